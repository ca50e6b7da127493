# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

# HTTP subcodes are built per status, e.g. "http_429"
def http_subcode(status_code: int) -> str:
    """Return the ``http_<status>`` subcode for a status code."""
    return f"http_{int(status_code)}"


# Validation subcodes
VALIDATION_WHERE_EMPTY = "validation_where_empty"
VALIDATION_WHERE_CONDITION = "validation_where_condition"
VALIDATION_INCLUDE_FIELD = "validation_include_field"
VALIDATION_ORDER_BY_FIELD = "validation_order_by_field"
VALIDATION_TAKE = "validation_take"
VALIDATION_ENTITY_TYPE = "validation_entity_type"
VALIDATION_ENTITY_ID = "validation_entity_id"
VALIDATION_PRESET = "validation_preset"
VALIDATION_PAGE_NUMBER = "validation_page_number"

# Transport subcodes
TRANSPORT_NETWORK = "transport_network"
TRANSPORT_TIMEOUT = "transport_timeout"
TRANSPORT_RETRY_EXHAUSTED = "transport_retry_exhausted"
TRANSPORT_INVALID_RESPONSE = "transport_invalid_response"

# Pagination subcodes
PAGINATION_KEY_NOT_FOUND = "pagination_key_not_found"
