# mobilewash/routes/customers.py
from mobilewash.crud import CrudRepository
from mobilewash.crud_api import build_crud_router
from mobilewash.models import Customer
from mobilewash.schemas import CustomerCreate, CustomerUpdate

customers = CrudRepository(Customer, "customer")

router = build_crud_router(customers, "/api/customers", CustomerCreate, CustomerUpdate)
