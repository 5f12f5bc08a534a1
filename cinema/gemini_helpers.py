import re, json

from cinema.exceptions import ConfigurationError
from cinema.logging_config import get_logger

logger = get_logger("gemini_helpers")


def _extract_json(txt: str):
    m = re.search(r"```json\s*(\{.*?\}|\[.*?\])\s*```", txt, flags=re.S | re.I)
    if m:
        try:
            return json.loads(m.group(1))
        except ValueError:
            pass
    m2 = re.search(r"(\{.*\}|\[.*\])", txt, flags=re.S)
    if m2:
        try:
            return json.loads(m2.group(1))
        except ValueError:
            pass
    return {"raw": txt}


def gemini_json(model, prompt: str):
    """JSON-mode call; falls back to fishing JSON out of the text answer."""
    if model is None:
        raise ConfigurationError("Text model is not initialised")
    resp = model.generate_content(prompt, generation_config={"response_mime_type": "application/json"})
    txt = resp.text or ""
    try:
        return json.loads(txt or "{}")
    except ValueError:
        logger.debug("Model answer is not plain JSON; extracting")
        return _extract_json(txt)


def gemini_text(model, prompt: str) -> str:
    if model is None:
        raise ConfigurationError("Text model is not initialised")
    resp = model.generate_content(prompt)
    return resp.text or ""
