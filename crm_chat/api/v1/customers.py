import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from crm_chat.api.dependencies import require_permissions
from crm_chat.api.schemas import CustomerCreate, CustomerPage, CustomerRead
from crm_chat.core.database import get_db
from crm_chat.core.messages import CUSTOMER_NOT_FOUND
from crm_chat.core.permissions import Permission, Role
from crm_chat.core.security import Subject
from crm_chat.models.customer import Customer


router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CustomerRead)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.CREATE_CUSTOMER])),
):
    customer = Customer(
        **payload.model_dump(),
        created_by=uuid.UUID(subject.id),
        last_contact_date=datetime.now(timezone.utc),
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("", response_model=CustomerPage)
def list_customers(
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    assigned_to: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.READ_CUSTOMER])),
):
    """List customers; agents only see customers assigned to them."""
    query = db.query(Customer)

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.company.ilike(pattern),
            )
        )
    if status_filter:
        query = query.filter(Customer.status == status_filter)
    if assigned_to:
        query = query.filter(Customer.assigned_to == assigned_to)

    if subject.role == Role.AGENT:
        query = query.filter(Customer.assigned_to == uuid.UUID(subject.id))

    total = query.count()
    customers = (
        query.order_by(Customer.name)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return CustomerPage(
        customers=[CustomerRead.model_validate(c) for c in customers],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.READ_CUSTOMER])),
):
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=CUSTOMER_NOT_FOUND,
        )
    return customer
