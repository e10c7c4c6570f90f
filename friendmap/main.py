import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from friendmap.core.config import settings
from friendmap.core.errors import FriendmapError, StoreError
from friendmap.database.connection import close_mongo_connection, connect_to_mongo, get_database
from friendmap.repositories.friend_request_repository import FriendRequestRepository
from friendmap.repositories.user_repository import UserRepository
from friendmap.routers.area_markers import router as area_markers_router
from friendmap.routers.auth import router as auth_router
from friendmap.routers.friend_requests import router as friend_requests_router
from friendmap.routers.socket import router as socket_router
from friendmap.routers.users import router as users_router
from friendmap.services.socket_service import get_socket_service
from friendmap.utils.logger import setup_logging
from friendmap.utils.notifications import get_push
from friendmap.utils.realtime_bus import FANOUT_CHANNEL, close_bus, get_bus


setup_logging()
logger = logging.getLogger("friendmap")


@asynccontextmanager
async def lifespan(app: FastAPI):

    await connect_to_mongo()
    db = get_database()
    await UserRepository(db).ensure_indexes()
    await FriendRequestRepository(db).ensure_indexes()
    await get_push()

    # broadcasts and room relays published by any worker
    bus = await get_bus()
    fanout = None
    fanout_task = None
    if bus.enabled:
        fanout = await bus.subscribe(FANOUT_CHANNEL, get_socket_service().deliver_fanout)
        fanout_task = asyncio.create_task(fanout.run())

    logger.info("%s started (%s)", settings.APP_NAME, settings.ENV)
    try:
        yield
    finally:
        if fanout is not None:
            await fanout.cancel()
            fanout_task.cancel()
        await close_bus()
        await close_mongo_connection()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

if not settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(
        "%s %s (ip=%s, ua=%s, auth_header=%s)",
        request.method,
        request.url.path,
        request.client.host if request.client else None,
        request.headers.get("user-agent"),
        "authorization" in request.headers,
    )
    return await call_next(request)


@app.exception_handler(FriendmapError)
async def friendmap_error_handler(request: Request, exc: FriendmapError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"err": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"err": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"err": message})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    # never leak driver detail to the caller
    err = StoreError()
    return JSONResponse(status_code=err.status_code, content={"err": err.message})


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(friend_requests_router)
app.include_router(area_markers_router)
app.include_router(socket_router)


@app.get("/")
async def root():

    db = get_database()
    collections = await db.list_collection_names()
    return {"message": "Connected to MongoDB!", "collections": collections}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("friendmap.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
