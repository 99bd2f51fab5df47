"""
Topology declaration errors
Raised while the resource graph is being declared, before anything is sent to Pulumi
"""

import pulumi


class TopologyError(pulumi.RunError):
    """Base class for errors found while declaring the network topology"""


class UnresolvedReference(TopologyError):
    """A record references a name that is not declared (or has the wrong kind)"""

    def __init__(self, source: str, field: str, target: str, expected: str = None):
        self.source = source
        self.field = field
        self.target = target
        self.expected = expected
        if expected:
            message = f"{source}.{field} must reference a {expected}, '{target}' is not one"
        else:
            message = f"{source}.{field} references undeclared resource '{target}'"
        super().__init__(message)


class InvalidContainment(TopologyError):
    """A CIDR block is outside its parent block or overlaps a sibling block"""

    def __init__(self, resource: str, cidr_block: str, parent_block: str, reason: str):
        self.resource = resource
        self.cidr_block = cidr_block
        self.parent_block = parent_block
        super().__init__(f"{resource}: {cidr_block} {reason} {parent_block}")
