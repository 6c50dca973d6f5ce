# app/services/prompts.py
"""
Fixed prompt text and response schemas sent to the generation service.

Each analysis mode maps to one AnalysisProfile; the screener maps a free-text
horizon to one Strategy. Nothing here talks to the network.
"""

from dataclasses import dataclass
from typing import Any, Dict

from langchain_core.prompts import PromptTemplate

from ..schemas.analysis import AnalysisMode, Market
from ..settings import get_settings
from .llm import GenerationConfig


_QUICK_SYSTEM = """
You are MarketMind, a senior financial analyst.
Provide a concise snapshot of price, recent news, and technical stance.
Always use web search to get the latest price and news.
""".strip()

_QUICK_PROMPT = """
Analyze {symbol}. Provide a structured report including Current Price (approx),
Key Catalysts, Risks, and a Verdict (Buy/Sell/Hold).
""".strip()

_DEEP_SYSTEM = """
You are a legendary "Master Investor" with 70+ years of experience. You do not write
generic reports; you write definitive, data-dense "Business Owner" breakdowns.

Your goal is to provide specific numbers, specific names, and specific dates.
Avoid vague phrases like "good performance."

CRITICAL: Detect the correct Exchange and Currency.
- If the user asks for "ICICI Bank" (NSE), do NOT quote the "IBN" (NYSE) price.
- Quote prices in the local currency.

MANDATORY DATA POINTS TO FIND & INCLUDE:
- Live Price, Market Cap, P/E Ratio.
- For Banks: CASA Ratio, Net Interest Margin (NIM), Net NPA, Provision Coverage Ratio.
- For Tech: Retention Rates, CAC/LTV, Cloud Growth % (if applicable).
- Management Names: name the CEO and their key strategic shifts.
- Valuation: compare Current P/E vs 5-Year Median P/E.

STRUCTURE YOUR RESPONSE EXACTLY LIKE THIS:

### Executive Summary: The 30-Second Snapshot
(Bullet points of Price [with Currency], Valuation, and a 1-word Verdict: Buy/Sell/Wait)

### I. The Business & The Moat
- Explain the business model simply.
- **The Moat:** identify the Cost Advantage, Switching Costs, or Network Effects.
- **The Shift:** how has the business changed in the last 5 years?

### II. The Management
- **The Leader:** name them. Are they a "Grower" or a "Consolidator"?
- **Integrity Check:** any red flags?
- **Skin in the Game:** do they own stock?

### III. The Financial Microscope
- A table or list of key metrics (ROE, ROA, Margins).
- **The "Owner Earnings" Test:** is cash flow growing?
- **Asset Quality:** (crucial for lenders) state the Net NPA %.

### IV. Valuation & Targets
- **Is it Cheap?** Compare P/E to historical averages.
- **The "Buffett" Test:** is it a wonderful business at a fair price?

### V. Predictions & Future Outlook (12-24 Months)
- **Consensus Targets:** a specific price range for 12 months out based on earnings growth.
- **The Catalyst:** what specific event could trigger a rally?
- **The Risk:** the #1 thing that could kill the thesis.

### VI. Final Verdict
(Definitive conclusion for a long-term holder)
""".strip()

_DEEP_PROMPT = """
Conduct a rigorous, data-heavy "Master Investor" analysis of {symbol}. Get every single
detail: the latest quarterly numbers (NPA, Margins, CASA) and Management details.
Include a specific Price Prediction section.
""".strip()


@dataclass(frozen=True)
class AnalysisProfile:
    """Model, persona and call options for one analysis mode."""

    mode: AnalysisMode
    model: str
    system_instruction: str
    prompt: PromptTemplate
    config: GenerationConfig

    def render(self, symbol: str) -> str:
        return self.prompt.format(symbol=symbol)


def analysis_profile(mode: AnalysisMode) -> AnalysisProfile:
    settings = get_settings()
    if mode == AnalysisMode.DEEP:
        return AnalysisProfile(
            mode=mode,
            model=settings.deep_model,
            system_instruction=_DEEP_SYSTEM,
            prompt=PromptTemplate.from_template(_DEEP_PROMPT),
            config=GenerationConfig(web_search=True, thinking_budget=4096),
        )
    return AnalysisProfile(
        mode=AnalysisMode.QUICK,
        model=settings.quick_model,
        system_instruction=_QUICK_SYSTEM,
        prompt=PromptTemplate.from_template(_QUICK_PROMPT),
        config=GenerationConfig(web_search=True),
    )


# ---------- live price ----------
QUOTE_PROMPT = PromptTemplate.from_template("""
Find the current real-time price of stock symbol "{symbol}".
Return a JSON object with:
- price (number)
- currency (string, e.g., USD, INR, EUR)
- exchange (string, e.g., NYSE, NSE, NASDAQ)

If the symbol exists on multiple exchanges (like ICICI Bank on NSE vs IBN on NYSE),
choose the primary domestic exchange unless the symbol explicitly implies the ADR.
""".strip())

QUOTE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "price": {"type": "number"},
        "currency": {"type": "string"},
        "exchange": {"type": "string"},
    },
    "required": ["price", "currency", "exchange"],
}


# ---------- forecast ----------
FORECAST_CONTEXT_PROMPT = PromptTemplate.from_template("""
Get the current price, currency, and exchange for {symbol}.
CRITICAL: Ensure you identify the correct currency (e.g. INR for Indian stocks, USD for US stocks).
Do not confuse the US ADR price with the local share price.
""".strip())

FORECAST_PROMPT = PromptTemplate.from_template("""
Based on this real-time context:
"{context}"

Generate a 3-month price forecast for {symbol}.
Create 3 distinct scenarios: Bearish, Base, and Bullish.
Assign a probability to each (must sum to 100%).
Provide a specific price target for each scenario IN THE SAME CURRENCY as the context price.
Estimate the current price.
Estimate an overall confidence score (0-100).
""".strip())

FORECAST_THINKING_BUDGET = 2048

FORECAST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "symbol": {"type": "string"},
        "timeframe": {"type": "string"},
        "currentPrice": {"type": "number"},
        "confidenceScore": {"type": "number"},
        "scenarios": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "One of: Bearish, Base, Bullish"},
                    "priceTarget": {"type": "number"},
                    "probability": {"type": "number"},
                    "reasoning": {"type": "string"},
                },
                "required": ["type", "priceTarget", "probability", "reasoning"],
            },
        },
    },
    "required": ["symbol", "scenarios", "confidenceScore"],
}


# ---------- screener ----------
@dataclass(frozen=True)
class Strategy:
    name: str
    focus: str

    @property
    def label(self) -> str:
        return f"{self.name}. {self.focus}"


INTRADAY_MOMENTUM = Strategy(
    "INTRA-DAY MOMENTUM",
    "Focus on high relative volume, pre-market movers, earnings beats, and immediate volatility.",
)
SWING_TRADING = Strategy(
    "SWING TRADING",
    "Focus on technical breakouts, sector rotation, and short-term news catalysts.",
)
SHORT_TO_MEDIUM_TREND = Strategy(
    "SHORT-TO-MEDIUM TERM TREND",
    "Focus on earnings growth, relative strength (RSI), and moving average crossovers.",
)
POSITION_TRADING = Strategy(
    "POSITION TRADING",
    "Focus on macro trends, fundamental growth, and sustained sector leadership.",
)
TREND_FOLLOWING = Strategy(
    "TREND FOLLOWING",
    "Focus on fundamental catalysts and technical trends.",
)
LONG_TERM_VALUE = Strategy(
    "LONG TERM VALUE & COMPOUNDING",
    "Focus on undervalued companies with wide moats, high ROIC, and durable "
    "competitive advantages (Buffett Style).",
)
BALANCED_GROWTH_VALUE = Strategy(
    "BALANCED GROWTH & VALUE",
    "Focus on companies with strong fundamentals and technical uptrends.",
)

MARKET_CONTEXT = {
    Market.US: "US Stock Market (NYSE/NASDAQ). Prices in USD.",
    Market.IN: "Indian Stock Market (NSE/BSE). Prices in INR.",
}

PICKS_PROMPT = PromptTemplate.from_template("""
You are an expert Portfolio Manager.
Market: {market_context}
Investment Horizon: {timeframe}
Selected Strategy: {strategy}

Using web search, identify 4 of the BEST stocks to buy right now that match this
specific strategy and timeframe.
Get real-time prices.
Provide a structured JSON response: an object whose "recommendations" field holds the picks.
""".strip())

RECOMMENDATION_ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "symbol": {"type": "string"},
        "name": {"type": "string"},
        "price": {"type": "string", "description": "Current price with currency symbol"},
        "currency": {"type": "string"},
        "action": {"type": "string", "enum": ["Buy", "Strong Buy", "Watch"]},
        "reasoning": {"type": "string", "description": "Why this fits the strategy and timeframe"},
        "riskLevel": {"type": "string", "enum": ["High", "Medium", "Low"]},
        "potentialUpside": {"type": "string", "description": "Estimated % upside"},
        "sources": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of 1-2 key news sources or websites used to validate this pick",
        },
    },
    "required": ["symbol", "name", "price", "reasoning", "riskLevel", "sources"],
}

PICKS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "recommendations": {"type": "array", "items": RECOMMENDATION_ITEM_SCHEMA},
    },
    "required": ["recommendations"],
}


# ---------- market news ----------
NEWS_PROMPT = (
    "What are the top 5 most important financial news headlines right now? "
    "Format as a concise list."
)
