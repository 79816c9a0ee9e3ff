from contextlib import asynccontextmanager

from fastapi import FastAPI

from forge_client.logging import setup_logging
from forge_client.routers import auth_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    app.state.user_sessions = {}
    yield


app = FastAPI(
    title="APS 3-legged login example",
    description="Authorize with Autodesk Platform Services and show the user profile",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.user_sessions = {}

app.include_router(auth_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "forge-client-example"}
