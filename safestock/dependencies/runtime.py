# safestock/dependencies/runtime.py
from fastapi import Request

from safestock.core.runtime import ClientRuntime


def get_runtime(request: Request) -> ClientRuntime:
    """
    FastAPI dependency returning the replica owned by this app instance.

    Usage:

    @router.get("/items")
    def list_items(runtime: ClientRuntime = Depends(get_runtime)):
        ...
    """
    return request.app.state.runtime
