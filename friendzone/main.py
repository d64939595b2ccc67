import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from friendzone.core.config import settings
from friendzone.database.connection import close_mongo_connection, connect_to_mongo, mongo_db_dependency
from friendzone.routers.auth import router as auth_router
from friendzone.routers.friends import router as friends_router
from friendzone.routers.users import router as users_router
from friendzone.services.errors import FriendGraphError
from friendzone.services.friend_service import error_body, outcome_for
from friendzone.utils.dependencies import TokenRejected


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):

    await connect_to_mongo()
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(title="FriendZone API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FriendGraphError)
async def friend_graph_error_handler(request: Request, exc: FriendGraphError):
    return JSONResponse(status_code=outcome_for(exc).status_code, content=error_body(exc))


@app.exception_handler(TokenRejected)
async def token_rejected_handler(request: Request, exc: TokenRejected):
    return JSONResponse(
        status_code=401,
        content={"success": False, "message": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(friends_router)


@app.get("/")
async def root(db = Depends(mongo_db_dependency)):

    collections = await db.list_collection_names()
    return {"message": "Connected to MongoDB!", "collections": collections}
