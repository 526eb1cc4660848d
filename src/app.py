"""Bazaar marketplace FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
marketplace domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it. PROTEAN_ENV
# selects the config overlay (see marketplace/domain.toml).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.domain import marketplace  # noqa: E402
from protean.integrations.fastapi import register_exception_handlers

marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Bazaar Marketplace API",
    description="Order lifecycle for a multi-seller marketplace",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for each request."""
    with marketplace.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import (  # noqa: E402
    cart_router,
    inventory_router,
    notification_router,
    order_router,
    seller_router,
)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(seller_router)
app.include_router(inventory_router)
app.include_router(notification_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    from marketplace.backend import get_backend, is_local_only

    return JSONResponse(
        content={
            "status": "ok",
            "domain": marketplace.name,
            "backend": {
                "mode": "local_only" if is_local_only() else "remote",
                "adapter": type(get_backend()).__name__,
            },
        }
    )
