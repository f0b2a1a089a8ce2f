from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.auth.kinds import AccountKind
from marketplace.db import get_db, store_errors
from marketplace.db_models import Product as DBProduct
from marketplace.db_models import Seller
from marketplace.models import Product, ProductPayload
from marketplace.security.tokens import TokenClaims
from marketplace.security_utils import require_kind

router = APIRouter(prefix="/products", tags=["products"])

require_seller = require_kind(AccountKind.SELLER)


def _out(product: DBProduct) -> Product:
    return Product(
        id=product.id,
        seller_email=product.seller.email,
        name=product.name,
        price=product.price,
        stock=product.stock,
    )


def _get_or_404(db: Session, product_id: int) -> DBProduct:
    with store_errors(db, "product store"):
        product = db.get(DBProduct, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _owned_or_403(db: Session, product_id: int, seller: TokenClaims) -> DBProduct:
    product = _get_or_404(db, product_id)
    if product.seller_id != seller.account_id:
        raise HTTPException(status_code=403, detail="not_product_owner")
    return product


@router.get("", response_model=list[Product])
def list_products(db: Session = Depends(get_db)):
    with store_errors(db, "product store"):
        products = db.execute(select(DBProduct).order_by(DBProduct.id)).scalars().all()
        return [_out(p) for p in products]


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return _out(_get_or_404(db, product_id))


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductPayload, seller: TokenClaims = Depends(require_seller), db: Session = Depends(get_db)):
    with store_errors(db, "seller store"):
        owner = db.get(Seller, seller.account_id)
    if owner is None or owner.email != seller.email:
        raise HTTPException(status_code=401, detail="unknown_account")

    product = DBProduct(seller_id=owner.id, name=payload.name, price=payload.price, stock=payload.stock)
    with store_errors(db, "product store"):
        db.add(product)
        db.commit()
        db.refresh(product)
        return _out(product)


@router.put("/{product_id}", response_model=Product)
def update_product(
    product_id: int,
    payload: ProductPayload,
    seller: TokenClaims = Depends(require_seller),
    db: Session = Depends(get_db),
):
    product = _owned_or_403(db, product_id, seller)
    with store_errors(db, "product store"):
        product.name = payload.name
        product.price = payload.price
        product.stock = payload.stock
        db.commit()
        db.refresh(product)
        return _out(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, seller: TokenClaims = Depends(require_seller), db: Session = Depends(get_db)) -> Response:
    product = _owned_or_403(db, product_id, seller)
    with store_errors(db, "product store"):
        db.delete(product)
        db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
