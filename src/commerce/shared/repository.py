from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.exceptions import NotFound


def find(aggregate_cls, identifier):
    """Load an aggregate, or return None when it does not exist."""
    if not identifier:
        return None
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        return None


def fetch(aggregate_cls, identifier, kind=None):
    """Load an aggregate or raise ``NotFound`` naming what was missing."""
    aggregate = find(aggregate_cls, identifier)
    if aggregate is None:
        raise NotFound(kind or aggregate_cls.__name__, identifier)
    return aggregate
