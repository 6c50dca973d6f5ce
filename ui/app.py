# ui/app.py
import os
import json
import requests
import pandas as pd
import streamlit as st
import plotly.express as px
import yfinance as yf

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

st.set_page_config(page_title="MarketMind", layout="wide")

# --- Header ---
st.title("📊 MarketMind")
st.caption("Backend: FastAPI  •  Frontend: Streamlit  •  Model: OpenAI + web search")

# --- Sidebar / Input ---
with st.sidebar:
    st.header("⚙️ Settings")
    symbol = st.text_input("Symbol", value="NVDA", help="e.g. NVDA, RELIANCE.NS, TSLA").strip().upper()
    mode = st.radio("Analysis mode", ["quick", "deep"], format_func=lambda m: "⚡ Quick" if m == "quick" else "🧠 Deep",
                    horizontal=True)
    period = st.selectbox("History period", ["3mo", "6mo", "1y"], index=1)

SENTIMENT_COLOR = {"bullish": "green", "bearish": "red", "neutral": "gray"}
CURRENCY_SIGN = {"USD": "$", "INR": "₹", "EUR": "€", "GBP": "£", "JPY": "¥"}

state = st.session_state
for key in ("news", "quote", "analysis", "forecast", "picks"):
    state.setdefault(key, None)


def money(value, currency):
    try:
        return f"{CURRENCY_SIGN.get(currency, '')}{value:,.2f}" + ("" if currency in CURRENCY_SIGN else f" {currency}")
    except Exception:
        return "-"


def api_get(path: str, **params):
    r = requests.get(f"{API_BASE}{path}", params=params, timeout=120)
    if r.status_code == 404:
        return None
    r.raise_for_status()
    return r.json()


def stream_analysis(symbol: str, mode: str, placeholder):
    """Render the analysis as it streams in; returns (quote, result)."""
    quote, result = None, None
    url = f"{API_BASE}/analyze/{symbol}/stream"
    with requests.get(url, params={"mode": mode}, stream=True, timeout=300) as r:
        r.raise_for_status()
        for line in r.iter_lines(decode_unicode=True):
            if not line:
                continue
            event = json.loads(line)
            kind = event.get("event")
            if kind == "partial":
                placeholder.markdown(event.get("text", ""))
            elif kind == "quote":
                quote = event.get("data")
            elif kind == "result":
                result = event.get("data")
                placeholder.markdown(result.get("text", ""))
    return quote, result


def load_price_history(ticker: str, period: str = "6mo"):
    df = yf.download(ticker, period=period, interval="1d", auto_adjust=True, progress=False)
    if df is None or df.empty:
        return None

    df = df.reset_index()
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = [
            "_".join([str(c) for c in col if c not in (None, "", "None")]).strip("_")
            for col in df.columns
        ]
    if "Date" in df.columns:
        df = df.rename(columns={"Date": "date"})

    if "Close" not in df.columns:
        cand = next((c for c in df.columns if str(c).lower().startswith("close")), None)
        if not cand:
            return None
        df = df.rename(columns={cand: "Close"})

    out = df[["date", "Close"]].dropna()
    out["date"] = pd.to_datetime(out["date"], errors="coerce")
    return out.dropna(subset=["date"])


def render_sources(sources):
    if not sources:
        return
    st.markdown("**Sources**")
    for s in sources:
        st.markdown(f"- [{s.get('title') or s.get('uri')}]({s.get('uri')})")


tab_dash, tab_research, tab_picks = st.tabs(["🏠 Dashboard", "🔎 Research", "🎯 Screener"])

# --- Dashboard: market news ---
with tab_dash:
    st.subheader("📰 Top Market News")
    if state.news is None or st.button("Refresh news"):
        try:
            with st.spinner("Fetching headlines …"):
                state.news = api_get("/news")
        except requests.RequestException as e:
            st.error(f"API error: {e}")
    news = state.news or {}
    if news.get("text"):
        st.markdown(news["text"])
        render_sources(news.get("sources"))
    else:
        st.info("No news fetched.")

# --- Research: price, streamed analysis, forecast ---
with tab_research:
    c1, c2 = st.columns([1, 1])
    analyze = c1.button("Analyze", type="primary", disabled=not symbol)
    forecast = c2.button("3-month forecast", disabled=not symbol)

    col_left, col_right = st.columns([2.2, 1.3])

    if analyze:
        state.quote, state.analysis, state.forecast = None, None, None
        with col_left:
            live = st.empty()
            try:
                with st.spinner(f"Analyzing {symbol} …"):
                    state.quote, state.analysis = stream_analysis(symbol, mode, live)
            except requests.RequestException as e:
                st.error(f"API error: {e}")
            live.empty()

    if forecast:
        try:
            with st.spinner(f"Forecasting {symbol} …"):
                state.forecast = api_get(f"/forecast/{symbol}")
            if state.forecast is None:
                st.warning("No forecast available.")
        except requests.RequestException as e:
            st.error(f"API error: {e}")

    with col_right:
        st.subheader("💹 Live price")
        q = state.quote
        if q:
            st.metric(f"{q['symbol']} · {q['exchange']}", money(q["price"], q["currency"]))
        else:
            st.info("No price available.")

        res = state.analysis
        if res:
            sentiment = res.get("sentiment", "neutral")
            color = SENTIMENT_COLOR.get(sentiment, "blue")
            st.markdown(f"**Sentiment:** <span style='color:{color}'>{sentiment.upper()}</span>",
                        unsafe_allow_html=True)

        st.subheader(f"📈 Price History ({period})")
        if symbol:
            hist = load_price_history(symbol, period=period)
            if hist is None or hist.empty:
                st.info("No history data.")
            else:
                fig = px.line(hist, x="date", y="Close", title=None)
                fig.update_layout(margin=dict(l=10, r=10, t=10, b=10), height=300)
                st.plotly_chart(fig, use_container_width=True)

    with col_left:
        if state.analysis:
            st.subheader(f"🤖 {state.analysis['symbol']} — {state.analysis['mode']} analysis")
            st.markdown(state.analysis.get("text", ""))
            render_sources(state.analysis.get("sources"))

    fc = state.forecast
    if fc:
        st.divider()
        st.subheader(f"🔮 Forecast — {fc.get('timeframe', '3 months')}  (confidence {fc.get('confidenceScore', 0):.0f}/100)")
        rows = [{
            "Scenario": s["type"].title(),
            "Target": s["priceTarget"],
            "Probability %": s["probability"],
            "Reasoning": s["reasoning"],
        } for s in fc.get("scenarios", [])]
        df_fc = pd.DataFrame(rows)
        fig = px.bar(df_fc, x="Scenario", y="Target", color="Scenario", text="Probability %",
                     color_discrete_map={"Bearish": "red", "Base": "gray", "Bullish": "green"})
        if fc.get("currentPrice"):
            fig.add_hline(y=fc["currentPrice"], line_dash="dot", annotation_text="current")
        fig.update_layout(margin=dict(l=10, r=10, t=10, b=10), height=320, showlegend=False)
        st.plotly_chart(fig, use_container_width=True)
        st.markdown(df_fc.to_markdown(index=False))

# --- Screener ---
with tab_picks:
    c1, c2, c3 = st.columns([1, 1, 1])
    market = c1.selectbox("Market", ["US", "IN"])
    horizon = c2.selectbox("Timeframe", ["Intraday", "1 Week", "1 Month", "3 Months", "6 Months", "1 Year", "Custom"],
                           index=2)
    custom = c3.text_input("Custom timeframe", disabled=horizon != "Custom")
    timeframe = (custom if horizon == "Custom" else horizon).strip() or "1 Month"

    if st.button("Find picks", type="primary"):
        state.picks = None
        try:
            with st.spinner("Screening …"):
                state.picks = api_get("/picks", market=market, timeframe=timeframe)
        except requests.RequestException as e:
            st.error(f"API error: {e}")

    picks = state.picks
    if picks:
        st.markdown(f"**Strategy:** {picks.get('strategy', '')}")
        recs = picks.get("recommendations", [])
        if not recs:
            st.info("No picks returned.")
        cols = st.columns(2)
        for i, r in enumerate(recs):
            with cols[i % 2].container(border=True):
                st.markdown(f"### {r['symbol']} · {r['name']}")
                st.markdown(f"**{r.get('action', '')}** · risk {r.get('riskLevel', '')} · "
                            f"{r.get('price', '')} · upside {r.get('potentialUpside') or '-'}")
                st.write(r.get("reasoning", ""))
                for src in r.get("sources", []):
                    st.caption(f"— {src}")
