# server/core/insight.py

import logging
from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI


logger = logging.getLogger(__name__)

NO_KEY_FALLBACK = "Check the forecast and plan your day accordingly!"
ERROR_FALLBACK = "Stay safe and enjoy your day!"

insight_prompt = PromptTemplate.from_template(
    "The current weather in {city} is {temperature}°C with a weather code of {weather_code}. "
    "The max temp today is {temp_max}°C and min is {temp_min}°C.\n"
    "Provide a brief, friendly 2-sentence insight about what to wear or what activity is best for this weather."
)


def _first(values: list[float] | None):
    return values[0] if values else "unknown"


def generate_insight(
    city: str,
    temperature: float,
    weather_code: int,
    temp_max: list[float] | None,
    temp_min: list[float] | None,
    api_key: str | None,
    model: str = "gpt-4o-mini",
) -> str:
    """
    Asks the LLM for a short wear/activity tip for today's weather.
    Never raises: a missing key or a provider failure yields a fixed tip.
    """
    if not api_key:
        return NO_KEY_FALLBACK

    try:
        llm = ChatOpenAI(model=model, temperature=0.7, api_key=api_key)
        chain = insight_prompt | llm
        result = chain.invoke({
            "city": city,
            "temperature": temperature,
            "weather_code": weather_code,
            "temp_max": _first(temp_max),
            "temp_min": _first(temp_min),
        })
        text = result.content.strip()
        return text or ERROR_FALLBACK
    except Exception:
        logger.exception("AI insight error")
        return ERROR_FALLBACK
