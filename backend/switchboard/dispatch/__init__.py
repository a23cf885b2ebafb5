# Dispatch package init
"""
Switchboard — Request Dispatch
================================

What:  The prefix-routed handler chain and the handlers it ships with.

    chain.py     RouteTable, Dispatcher, prefix_matches
    response.py  ChainResponse (what handlers write into)
    handlers.py  log_request, hello_world, goodbye_world, not_found
"""

from switchboard.dispatch.chain import (
    Action,
    Dispatcher,
    HandlerRegistration,
    Next,
    RouteTable,
    prefix_matches,
)
from switchboard.dispatch.response import ChainResponse

__all__ = [
    "Action",
    "ChainResponse",
    "Dispatcher",
    "HandlerRegistration",
    "Next",
    "RouteTable",
    "prefix_matches",
]
