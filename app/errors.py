"""Errors raised by the routing engine and its rule store."""


class RoutingError(Exception):
    """Base class for routing errors."""


class RuleNotFoundError(RoutingError):
    """No routing rule exists with the requested id."""

    def __init__(self, rule_id: int):
        self.rule_id = rule_id
        super().__init__(f"Routing rule with ID {rule_id} not found")


class StoreUnavailableError(RoutingError):
    """The rule store or audit log could not be reached."""
