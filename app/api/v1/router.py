"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import (
    conversations,
    disputes,
    eligibility,
    evidence,
    intake,
    representments,
    transactions,
)

api_router = APIRouter()

# Eligibility
api_router.include_router(eligibility.router, prefix="/eligibility", tags=["Eligibility"])

# Intake
api_router.include_router(intake.router, prefix="/intake", tags=["Intake"])

# Evidence
api_router.include_router(evidence.router, prefix="/evidence", tags=["Evidence"])

# Disputes
api_router.include_router(disputes.router, prefix="/disputes", tags=["Disputes"])

# Representments
api_router.include_router(representments.router, prefix="/representments", tags=["Representments"])

# Conversations
api_router.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])

# Bank case views
api_router.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
