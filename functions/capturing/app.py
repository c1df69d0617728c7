"""Tagged functions that close over outer state, used for scanner demos."""

import json

TABLE_NAME = "orders"
RETRIES = 3


# no-implicit-closure
def handler(event, context):
    return {"table": TABLE_NAME, "body": json.dumps(event)}


def make_counter():
    count = 0

    # no-implicit-closure
    def increment():
        nonlocal count
        count += 1
        return count

    return increment


# no-implicit-closure (RETRIES)
should_retry = lambda attempt: attempt < RETRIES
