"""
Offer management endpoints.

Provides REST API for creating, sending and answering job offers and for
producing the offer letter.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CallerContext,
    Permission,
    get_db,
    get_message_sender,
    get_session_factory,
    require_permission,
)
from api.schemas.common import ERROR_RESPONSES
from api.services import offers as offer_service
from core.integrations.email import MessageSender

router = APIRouter(prefix="/offers", tags=["offers"], responses=ERROR_RESPONSES)


class CreateOfferRequest(BaseModel):
    """Request model for creating a new offer."""
    application_id: int = Field(..., description="Application to create offer for")
    salary: Decimal = Field(..., gt=0, description="Gross salary")
    title: Optional[str] = Field(None, max_length=255, description="Role title (default: job title)")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code")
    expires_at: Optional[datetime] = Field(None, description="Offer expiry")


class SendOfferRequest(BaseModel):
    """Request model for sending an offer."""
    expires_in_days: Optional[int] = Field(None, ge=1, le=90, description="Days until offer expires")
    email: bool = Field(False, description="Email the offer letter after sending")


class AcceptOfferRequest(BaseModel):
    signature_ref: Optional[str] = Field(None, max_length=500, description="Captured signature reference")


class DeclineOfferRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Why the candidate declined")


class GenerateContractRequest(BaseModel):
    template_id: Optional[int] = Field(None, description="Contract template (default letter when omitted)")


class ContractTextRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Full offer letter text")


class ContractTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1, description="Body with {{placeholder}} fields")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Offer",
    description="Create a PENDING offer. Requires offer:create permission.",
)
async def create_offer(
    request: CreateOfferRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_CREATE)),
):
    return await offer_service.create_offer(db, caller=caller, **request.model_dump())


@router.get(
    "",
    summary="List Offers",
    description="Offers of an application. Requires offer:read permission.",
)
async def list_offers(
    application_id: int = Query(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_READ)),
):
    return await offer_service.list_offers(db, application_id)


@router.post(
    "/templates",
    status_code=status.HTTP_201_CREATED,
    summary="Create Contract Template",
    description="Requires template:manage permission.",
)
async def create_contract_template(
    request: ContractTemplateRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.TEMPLATE_MANAGE)),
):
    return await offer_service.create_contract_template(db, request.name, request.body)


@router.get(
    "/templates",
    summary="List Contract Templates",
    description="Requires offer:read permission.",
)
async def list_contract_templates(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_READ)),
):
    return await offer_service.list_contract_templates(db)


@router.get(
    "/{offer_id}",
    summary="Get Offer Details",
    description="Get an offer with its effective status. Requires offer:read permission.",
)
async def get_offer(
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_READ)),
):
    return await offer_service.get_offer(db, offer_id)


@router.post(
    "/{offer_id}/send",
    summary="Send Offer",
    description="Issue a pending offer. Requires offer:send permission.",
)
async def send_offer(
    background_tasks: BackgroundTasks,
    request: Optional[SendOfferRequest] = None,
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    session_factory: Callable = Depends(get_session_factory),
    sender: MessageSender = Depends(get_message_sender),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_SEND)),
):
    """Mark the offer SENT; the letter is emailed afterwards when asked for."""
    request = request or SendOfferRequest()
    result = await offer_service.send_offer(db, offer_id, request.expires_in_days, caller)
    if request.email:
        background_tasks.add_task(
            offer_service.deliver_offer_letter, session_factory, sender, offer_id
        )
    return result


@router.post(
    "/{offer_id}/accept",
    summary="Accept Offer",
    description="Record acceptance. Requires offer:respond permission.",
)
async def accept_offer(
    request: Optional[AcceptOfferRequest] = None,
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_RESPOND)),
):
    signature_ref = request.signature_ref if request else None
    return await offer_service.accept_offer(db, offer_id, signature_ref, caller)


@router.post(
    "/{offer_id}/decline",
    summary="Decline Offer",
    description="Record refusal. Requires offer:respond permission.",
)
async def decline_offer(
    request: Optional[DeclineOfferRequest] = None,
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_RESPOND)),
):
    reason = request.reason if request else None
    return await offer_service.decline_offer(db, offer_id, reason, caller)


@router.post(
    "/{offer_id}/contract",
    summary="Generate Contract",
    description="Render and store the offer letter. Requires offer:contract permission.",
)
async def generate_contract(
    request: Optional[GenerateContractRequest] = None,
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_CONTRACT)),
):
    template_id = request.template_id if request else None
    return await offer_service.generate_contract(db, offer_id, template_id)


@router.put(
    "/{offer_id}/contract-text",
    summary="Edit Contract Text",
    description="Replace the offer letter text. Requires offer:contract permission.",
)
async def set_contract_text(
    request: ContractTextRequest,
    offer_id: int = Path(..., description="Offer ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.OFFER_CONTRACT)),
):
    return await offer_service.set_contract_text(db, offer_id, request.text)
