# backend/chat.py
import logging
import requests

from config import CHATBOT_URL, CHATBOT_TIMEOUT_SECONDS
from logic.errors import ChatbotError

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response from AI."


def ask_chatbot(message, intent=""):
    payload = {
        "queryResult": {
            "queryText": message,
            "intent": {"displayName": intent or ""}
        }
    }

    try:
        response = requests.post(CHATBOT_URL, json=payload, timeout=CHATBOT_TIMEOUT_SECONDS)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error("Chatbot request failed: %s", e)
        raise ChatbotError() from e
    except ValueError as e:
        logger.error("Chatbot returned non-JSON content: %s", response.text[:200])
        raise ChatbotError() from e

    return data.get("fulfillmentText") or NO_RESPONSE
