"""Domain models and logic for the equity taxes engine.

This package holds the transaction model, the tax event grouping state machine
and the profit computation. Nothing here performs I/O; exchange rates come in
through the ``CurrencyConverter`` protocol.
"""

__all__ = [
    "errors",
    "event_builder",
    "pricing",
    "tax_event",
    "transactions",
]
