# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Constants for the Targetprocess REST API (v1) and its query language.
"""

# REST API v1 path appended to the account base URL
API_PATH = "/api/v1"

# Response encoding marker sent as ``format=`` on every query
FORMAT_JSON = "json"

# Query parameter carrying the API key when token authentication is used
ACCESS_TOKEN_PARAM = "access_token"

CUSTOM_FIELD_NAMESPACE = "CustomField."
"""Caller-facing prefix that marks a custom field in where/include expressions."""

CUSTOM_FIELD_WIRE_PREFIX = "cf_"
"""Prefix the service expects for custom fields whose names collide with native fields."""

MAX_TAKE = 1000
"""Largest page of entities the service returns for a single query."""

# Entity type discovery endpoint and the page size used to read it in one call
ENTITY_TYPES_ENDPOINT = "EntityTypes"
ENTITY_TYPES_TAKE = 1000

# OpenTelemetry attribute names
OTEL_ATTR_DB_SYSTEM = "db.system"
OTEL_ATTR_DB_OPERATION = "db.operation"
OTEL_ATTR_HTTP_METHOD = "http.method"
OTEL_ATTR_HTTP_URL = "http.url"
OTEL_ATTR_HTTP_STATUS_CODE = "http.status_code"
OTEL_ATTR_TARGETPROCESS_ENTITY_TYPE = "targetprocess.entity_type"
OTEL_ATTR_TARGETPROCESS_REQUEST_ID = "targetprocess.client_request_id"
OTEL_ATTR_TARGETPROCESS_RETRY_COUNT = "targetprocess.retry_count"
