# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Targetprocess client quickstart.

Walks through entity type validation, keyword search, the fluent builder,
paged text results and DataFrame conversion against a live account.

Usage:
    python examples/basic/quickstart.py
"""

import getpass
import sys

from Apptio.Targetprocess import AuthConfig, TargetprocessClient
from Apptio.Targetprocess.core.errors import TransportError, ValidationError


def log_call(call: str) -> None:
    print({"call": call})


entered = input("Enter Targetprocess URL (e.g. https://yourcompany.tpondemand.com): ").strip()
if not entered:
    print("No URL entered; exiting.")
    sys.exit(1)

token = getpass.getpass("Access token (leave blank to use username/password): ").strip()
if token:
    auth = AuthConfig.apikey(token)
else:
    username = input("Username: ").strip()
    auth = AuthConfig.from_credentials(username, getpass.getpass("Password: "))

with TargetprocessClient(entered, auth) as client:
    log_call("client.test_connection()")
    if not client.test_connection():
        print("Connection failed; check the URL and credentials.")
        sys.exit(1)

    log_call("client.entity_types.validate('UserStorys')")
    result = client.entity_types.validate("UserStorys")
    print({"valid": result.is_valid, "source": result.source, "errors": list(result.errors)})

    log_call("client.query.search('UserStory', where=..., take=5)")
    try:
        stories = client.query.search(
            "UserStory",
            where="EntityState.Name ne 'Done'",
            include=["Project", "EntityState"],
            order_by=["CreateDate desc"],
            take=5,
        )
    except (ValidationError, TransportError) as e:
        print(f"Search failed: {e}")
        sys.exit(1)
    for s in stories:
        print(f" - #{s.get('Id')} {s.get('Name')} [{(s.get('EntityState') or {}).get('Name')}]")

    log_call("client.query.builder('Bug').preset('highPriorityUnassigned').take(10).execute()")
    bugs = client.query.builder("Bug").preset("highPriorityUnassigned").include("Project").take(10).execute()
    print({"unassigned_high_priority_bugs": len(bugs)})

    log_call("client.query.search_text('Feature', take=100)")
    page = client.query.search_text("Feature", include=["Epic"], take=100)
    print(page.text[:500])
    print(page.footer())
    if page.has_more:
        log_call(f"client.pages.page({page.key!r})")
        print(client.pages.page(page.key).text[:500])

    log_call("client.query.search_dataframe('Task', take=200)")
    df = client.query.search_dataframe("Task", include=["EntityState"], take=200)
    if not df.empty and "EntityState.Name" in df.columns:
        print(df.groupby("EntityState.Name").size())
