from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI

from .routers import analyze, market, screener
from .settings import get_settings

logging.getLogger().setLevel(get_settings().log_level.upper())

app = FastAPI(
    title="MarketMind API",
    version="1.0.0",
    description="LLM-grounded stock research: live prices, analysis, forecasts and picks",
)
# register routers
app.include_router(market.router)
app.include_router(analyze.router)
app.include_router(screener.router)

@app.get("/health")
def health():
    return {"ok": True}
