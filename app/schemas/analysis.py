from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class AnalysisMode(str, Enum):
    QUICK = "quick"  # fast model + search
    DEEP = "deep"    # reasoning model + search + thinking budget


class Market(str, Enum):
    US = "US"
    IN = "IN"


class ScenarioKind(str, Enum):
    BEARISH = "bearish"
    BASE = "base"
    BULLISH = "bullish"


class RecommendationAction(str, Enum):
    BUY = "Buy"
    STRONG_BUY = "Strong Buy"
    WATCH = "Watch"


class RiskLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


_CURRENCY_GLYPHS = {"$": "USD", "₹": "INR", "€": "EUR", "£": "GBP", "¥": "JPY"}


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    currency: str = Field(pattern=r"^[A-Z]{3}$")
    exchange: str

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return _CURRENCY_GLYPHS.get(v, v.upper())
        return v


class GroundingSource(BaseModel):
    title: str
    uri: str


class AnalysisResult(BaseModel):
    symbol: str
    mode: AnalysisMode
    text: str
    sentiment: Sentiment = Sentiment.NEUTRAL
    sources: List[GroundingSource] = []


class ResearchReport(BaseModel):
    quote: Optional[PriceQuote] = None
    analysis: AnalysisResult


class ForecastScenario(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: ScenarioKind = Field(alias="type")
    price_target: float = Field(alias="priceTarget")
    probability: float = Field(ge=0, le=100)
    rationale: str = Field(alias="reasoning")

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        # the service answers "Bearish" / "Base case" / "BULLISH" alike
        if isinstance(v, str):
            v = v.strip().lower()
            if v.endswith(" case"):
                v = v[: -len(" case")]
        return v


class Forecast(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    timeframe: str = "3 months"
    current_price: Optional[float] = Field(default=None, alias="currentPrice")
    confidence_score: float = Field(alias="confidenceScore", ge=0, le=100)
    scenarios: List[ForecastScenario]

    @model_validator(mode="after")
    def one_scenario_per_kind(self):
        kinds = [s.kind for s in self.scenarios]
        if len(kinds) != 3 or set(kinds) != set(ScenarioKind):
            raise ValueError(
                "forecast needs exactly one bearish, base and bullish scenario, "
                f"got {[k.value for k in kinds]}"
            )
        return self

    def scenario(self, kind: ScenarioKind) -> ForecastScenario:
        return next(s for s in self.scenarios if s.kind == kind)


class Recommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str
    price: str  # display string, e.g. "$182.40"
    currency: str = ""
    action: RecommendationAction = RecommendationAction.WATCH
    rationale: str = Field(alias="reasoning")
    risk_level: RiskLevel = Field(alias="riskLevel")
    upside: str = Field(default="", alias="potentialUpside")
    sources: List[str] = []

    @field_validator("price", mode="before")
    @classmethod
    def price_as_display_string(cls, v):
        if isinstance(v, (int, float)):
            return f"{v:,.2f}"
        return v


class ScreenerResult(BaseModel):
    recommendations: List[Recommendation] = []
    strategy: str


class MarketNews(BaseModel):
    text: str
    sources: List[GroundingSource] = []
