"""Product routes.

  GET     /               public listing of active products
  GET     /{product_id}   one product (public)
  POST    /               create (products.create)
  PUT     /{product_id}   update (products.update + ownership)
  DELETE  /{product_id}   soft delete (products.delete + ownership)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_principal, get_gate, get_store, require_permission
from app.auth.gate import PermissionGate
from app.auth.policy import DELETE, UPDATE
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission
from app.auth.store import SQLAlchemyAccessStore
from app.database import get_db
from app.schemas.common import PaginatedResponse
from app.schemas.product import ProductCreate, ProductOut, ProductUpdate
from app.services import products as product_service

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[ProductOut])
async def list_products(
    search: str | None = Query(None, max_length=100),
    merchant_id: int | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.list_products(
        db, search=search, merchant_id=merchant_id, limit=limit, offset=offset
    )


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await product_service.get_product(db, product_id)


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    principal: AuthenticatedPrincipal = Depends(require_permission(Permission.PRODUCTS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.create_product(db, principal, body)


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    body: ProductUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    store: SQLAlchemyAccessStore = Depends(get_store),
    db: AsyncSession = Depends(get_db),
):
    await gate.authorize_instance(
        principal, Permission.PRODUCTS_UPDATE, product_id, UPDATE,
        store.find_product_owner_info,
    )
    return await product_service.update_product(db, product_id, body)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    store: SQLAlchemyAccessStore = Depends(get_store),
    db: AsyncSession = Depends(get_db),
):
    await gate.authorize_instance(
        principal, Permission.PRODUCTS_DELETE, product_id, DELETE,
        store.find_product_owner_info,
    )
    await product_service.delete_product(db, product_id)
