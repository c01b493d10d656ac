from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, engine
import models  # noqa: F401  在 Base.metadata 註冊資料表
from api import registry, matches, accounts

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 在應用啟動時建立 ledger 資料表
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Tic-Tac-Toe Ledger API",
    description="Two-player tic-tac-toe with escrowed stakes, fees and payouts",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(registry.router)
app.include_router(matches.router)
app.include_router(accounts.router)


@app.get("/")
def root():
    return {"message": "Tic-Tac-Toe Ledger API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
