from fastapi import Request

from boardsync.services.lifecycle import LifecycleRouter


def get_lifecycle_router(request: Request) -> LifecycleRouter:
    """
    FastAPI dependency returning the process-wide ``LifecycleRouter``.

    The router is built in the application lifespan and stored on
    ``app.state``; tests replace this dependency with one wired to an
    in-memory database and fake adapters.
    """
    return request.app.state.lifecycle
