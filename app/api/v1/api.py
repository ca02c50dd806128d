from fastapi import APIRouter
from app.api.v1.routes.bookings import router as bookings_router
from app.api.v1.routes.payments import router as payments_router
from app.api.v1.routes.extensions import router as extensions_router
from app.api.v1.routes.refunds import router as refunds_router
from app.api.v1.routes.ledger import router as ledger_router
from app.api.v1.routes.fees import router as fees_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings_router)
api_router.include_router(payments_router)
api_router.include_router(extensions_router)
api_router.include_router(refunds_router)
api_router.include_router(ledger_router)
api_router.include_router(fees_router)
