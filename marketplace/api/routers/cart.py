# marketplace/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import current_customer
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import CartItemIn, CartOut, CartQuantityIn, CartTotalOut, Envelope
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=Envelope[CartOut])
def get_cart(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).get_cart(user.id))


@router.get("/total", response_model=Envelope[CartTotalOut])
def get_total(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).get_total(user.id))


@router.post("/items", response_model=Envelope[CartOut])
def add_item(payload: CartItemIn, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).add_item(user.id, payload.product_id, payload.quantity), "Item added to cart")


@router.put("/items/{product_id}", response_model=Envelope[CartOut])
def update_item(
    product_id: int,
    payload: CartQuantityIn,
    user: UserModel = Depends(current_customer),
    db: Session = Depends(get_db),
):
    return ok(get_service(db).update_quantity(user.id, product_id, payload.quantity), "Cart updated")


@router.delete("/items/{product_id}", response_model=Envelope[CartOut])
def remove_item(product_id: int, user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).remove_item(user.id, product_id), "Item removed from cart")


@router.delete("/clear", response_model=Envelope[CartOut])
def clear_cart(user: UserModel = Depends(current_customer), db: Session = Depends(get_db)):
    return ok(get_service(db).clear(user.id), "Cart cleared")
