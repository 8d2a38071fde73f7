from contextlib import asynccontextmanager

from fastapi import FastAPI
from shared.config.database import create_tables

# IMPORTANT: import models so they register with Base
from services.product_service import models as product_models
from services.order_service import models as order_models
from services.payment_service import models as payment_models

from services.product_service.main import product_app
from services.order_service.main import order_app


# Mounted apps don't run their own lifespan, so the cluster creates every table
@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(title="Campus Resale Cluster", lifespan=lifespan)

app.mount("/products", product_app)
app.mount("/orders", order_app)
