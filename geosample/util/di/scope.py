"""Custom Dishka scopes for geosample."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """geosample dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Application lifetime (config, shared HTTP connection pool)
    - UOW: Unit of Work (one HTTP request or CLI invocation)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
