import logging
import uuid

import jwt
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from prometheus_fastapi_instrumentator import Instrumentator

from marketplace.config import Settings
from marketplace.database import init_db
from marketplace.errors import MarketplaceError, ServerError
from marketplace.kafka import KafkaProducer
from marketplace.routers import auth, offers, product, transactions
from marketplace.utils.tokens import decode_access_token

logging.basicConfig(
    level=Settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("marketplace")

if Settings.OTEL_EXPORTER_ENDPOINT:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: "marketplace"}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=Settings.OTEL_EXPORTER_ENDPOINT, insecure=True))
    )
    trace.set_tracer_provider(provider)

app = FastAPI(title="Marketplace", version="0.1.0")
app.state.producer = None
Instrumentator().instrument(app).expose(app)  # /metrics

app.include_router(auth.router)
app.include_router(product.router)
app.include_router(offers.router)
app.include_router(transactions.router)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = ServerError()
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.detail, "code": error.code},
    )


@app.on_event("startup")
async def startup_event():
    await init_db()
    if Settings.KAFKA_ENABLED:
        producer = KafkaProducer()
        await producer.start()
        app.state.producer = producer


@app.on_event("shutdown")
async def shutdown_event():
    if app.state.producer:
        await app.state.producer.stop()


@app.middleware("http")
async def user_activity(request: Request, call_next):
    user_id = "anon"
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        try:
            user_id = decode_access_token(header[len("Bearer "):])["user_id"]
        except (jwt.PyJWTError, KeyError, MarketplaceError):
            pass

    response = await call_next(request)

    if app.state.producer:
        await app.state.producer.send(
            "request",
            {
                "event_id": str(uuid.uuid4()),
                "user_id": user_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
            },
            topic=Settings.ACTIVITY_TOPIC,
        )
    return response
