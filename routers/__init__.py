# routers/__init__.py
from .notes import router as notes_router
from .wallet import router as wallet_router

__all__ = [
     "notes_router",
     "wallet_router",
]
