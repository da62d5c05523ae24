"""
Cart API.

Works for authenticated users (bearer token) and guests (X-Guest-Token).
When both are presented the authenticated identity wins.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from models.cart import CartDetailDTO
from services.cart import CartService
from utils.token_validator import Identity
from web.dependencies import get_guest_token, get_identity, get_optional_identity, get_session

logger = logging.getLogger(__name__)

cart_router = APIRouter(prefix="/api/cart", tags=["cart"])


class GuestCartResponse(BaseModel):
    guest_token: str


class AddToCartPayload(BaseModel):
    """Payload for adding a product to the cart."""
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=1000)


class UpdateCartItemPayload(BaseModel):
    """New quantity for a cart line. 0 removes the line."""
    quantity: int = Field(..., ge=0, le=1000)


class TransferGuestCartPayload(BaseModel):
    guest_token: str = Field(..., min_length=1, max_length=64)


class MessageResponse(BaseModel):
    message: str


@cart_router.post("/guest", response_model=GuestCartResponse, status_code=201)
async def create_guest_cart(session: AsyncSession = Depends(get_session)):
    cart = await CartService.create_guest_cart(session)
    return GuestCartResponse(guest_token=cart.guest_token)


@cart_router.post("/add", response_model=CartDetailDTO)
async def add_to_cart(payload: AddToCartPayload,
                      identity: Identity | None = Depends(get_optional_identity),
                      guest_token: str | None = Depends(get_guest_token),
                      session: AsyncSession = Depends(get_session)):
    """
    Add a product to the cart.

    Without any credential a new guest cart is created; its token is returned
    in the response body (guest_token) and must be sent as X-Guest-Token afterwards.
    """
    owner = CartService.resolve_owner(identity, guest_token)
    return await CartService.add_item(owner, payload.product_id, payload.quantity, session)


@cart_router.get("", response_model=CartDetailDTO)
async def get_cart(identity: Identity | None = Depends(get_optional_identity),
                   guest_token: str | None = Depends(get_guest_token),
                   session: AsyncSession = Depends(get_session)):
    owner = CartService.resolve_owner(identity, guest_token)
    return await CartService.get_cart(owner, session)


@cart_router.patch("/items/{cart_item_id}", response_model=CartDetailDTO)
async def update_cart_item(cart_item_id: int,
                           payload: UpdateCartItemPayload,
                           identity: Identity | None = Depends(get_optional_identity),
                           guest_token: str | None = Depends(get_guest_token),
                           session: AsyncSession = Depends(get_session)):
    owner = CartService.resolve_owner(identity, guest_token)
    return await CartService.update_item(cart_item_id, payload.quantity, owner, session)


@cart_router.delete("/items/{cart_item_id}", response_model=CartDetailDTO)
async def remove_cart_item(cart_item_id: int,
                           identity: Identity | None = Depends(get_optional_identity),
                           guest_token: str | None = Depends(get_guest_token),
                           session: AsyncSession = Depends(get_session)):
    owner = CartService.resolve_owner(identity, guest_token)
    return await CartService.remove_item(cart_item_id, owner, session)


@cart_router.delete("/clear", response_model=MessageResponse)
async def clear_cart(identity: Identity | None = Depends(get_optional_identity),
                     guest_token: str | None = Depends(get_guest_token),
                     session: AsyncSession = Depends(get_session)):
    owner = CartService.resolve_owner(identity, guest_token)
    removed = await CartService.clear(owner, session)
    return MessageResponse(message=f"Cart cleared ({removed} items removed)")


@cart_router.post("/transfer", response_model=CartDetailDTO)
async def transfer_guest_cart(payload: TransferGuestCartPayload,
                              identity: Identity = Depends(get_identity),
                              session: AsyncSession = Depends(get_session)):
    """Merge the given guest cart into the authenticated user's cart."""
    return await CartService.transfer_guest_cart(payload.guest_token, identity, session)
