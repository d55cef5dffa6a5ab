from idverify.routes.verification import router as verification_router
from idverify.routes.webhook import router as webhook_router
from idverify.routes.admin import router as admin_router

__all__ = ["verification_router", "webhook_router", "admin_router"]
