# main.py
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.logging_config import configure_logging
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.connection_routes import router as connection_router
from routers.health_routes import router as health_router
from routers.insights_routes import router as insights_router
from routers.market_routes import router as market_router
from routers.portfolio_routes import router as portfolio_router

configure_logging()

app = FastAPI(title="Portfolio Aggregator")

origins = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Include routers
app.include_router(health_router)
app.include_router(portfolio_router, prefix="/api/portfolio")
app.include_router(insights_router, prefix="/api/insights")
app.include_router(market_router, prefix="/api")
app.include_router(connection_router, prefix="/api/connections")
app.mount("/metrics", make_asgi_app())

# db startup
from database import Base, engine
import models  # this triggers models/__init__.py which imports all tables

Base.metadata.create_all(bind=engine)
