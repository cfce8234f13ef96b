"""
Intent and entity recognition.

This module turns a free-text utterance into an intent plus entities.
It uses a tiered approach:
1. Tier A (Deterministic): Pattern matching for building numbers
2. Tier B (LLM Parser): OpenAI for intent and free-form entities

The LLM is ONLY used as a parser. It never picks the person or the reply.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dialogs.specs import DIALOGS, Intent, get_known_entity_names

logger = logging.getLogger(__name__)


@dataclass
class NluResult:
    """Result of recognizing one utterance."""
    intent: str = Intent.NONE.value
    entities: Dict[str, Any] = field(default_factory=dict)
    llm_used: bool = False
    llm_model: Optional[str] = None
    confidence: str = "HIGH"  # HIGH for deterministic, MEDIUM/LOW for LLM


# =============================================================================
# TIER A: DETERMINISTIC EXTRACTION
# =============================================================================

BUILDING_PATTERN = re.compile(r'\b(?:building|bldg\.?|bld\.?)\s*#?\s*(\d+)\b', re.IGNORECASE)


def extract_building_number(utterance: str) -> Optional[int]:
    """
    Extract a building number from text like "near building 12" or "bldg 7".

    Returns:
        The building number, or None if the text doesn't mention one
    """
    match = BUILDING_PATTERN.search(utterance)
    if match:
        return int(match.group(1))
    return None


# =============================================================================
# TIER B: LLM EXTRACTION
# =============================================================================

def build_nlu_prompt(utterance: str) -> str:
    """
    Build the prompt for LLM recognition from the dialog registry.

    The LLM is instructed to ONLY classify and extract, never to answer.
    """
    intent_lines = []
    entity_lines = []
    for spec in DIALOGS.values():
        intent_lines.append(f'- "{spec.intent.value}": {spec.description}')
        for example in spec.examples:
            intent_lines.append(f'    e.g. "{example}"')
        for entity in spec.entities:
            entity_lines.append(f"- {entity.name} ({entity.input_type.value}): {entity.description}")

    prompt = f"""Classify the user message and extract entities.

INTENTS:
{chr(10).join(intent_lines)}
- "{Intent.NONE.value}": anything else

ENTITIES:
{chr(10).join(entity_lines)}

USER MESSAGE: "{utterance}"

INSTRUCTIONS:
1. Pick exactly ONE intent from the list above
2. Use the EXACT entity names listed above
3. For NUMBER entities, output a number
4. Do NOT include entities that aren't mentioned
5. Do NOT make up values
6. Do NOT answer the user or provide any other text

OUTPUT FORMAT (JSON only, no other text):
{{"intent": "intent_name", "entities": {{"entity_name": "value", ...}}}}"""

    return prompt


def sanitize_nlu_output(data: Any) -> NluResult:
    """
    Coerce raw model output into an NluResult.

    Unknown intents become "None", unknown entity names and empty values are
    dropped, non-object shapes are treated as empty.
    """
    if not isinstance(data, dict):
        logger.warning(f"[NLU] Unexpected output shape: {type(data).__name__}")
        return NluResult(confidence="LOW")

    intent = data.get("intent")
    if not isinstance(intent, str) or intent not in DIALOGS:
        intent = Intent.NONE.value

    entities = data.get("entities")
    if not isinstance(entities, dict):
        entities = {}

    known = set(get_known_entity_names())
    sanitized = {
        k: v for k, v in entities.items()
        if k in known and v is not None and v != "" and v != []
    }

    return NluResult(intent=intent, entities=sanitized, confidence="MEDIUM")


async def recognize_with_llm(
    utterance: str,
    openai_client: Any,
    model: str = "gpt-4o-mini",
) -> NluResult:
    """
    Recognize intent and entities using OpenAI as a parser.

    Args:
        utterance: The user's message
        openai_client: OpenAI async client
        model: Model to use

    Returns:
        NluResult; empty with LOW confidence if the call or parsing fails
    """
    prompt = build_nlu_prompt(utterance)

    try:
        response = await openai_client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": "You are an intent recognition assistant. Output ONLY valid JSON, nothing else."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.0,
            max_tokens=300,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content
        logger.debug(f"[NLU] LLM response: {content}")

        result = sanitize_nlu_output(json.loads(content))

    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"[NLU] LLM JSON parse error: {e}")
        result = NluResult(confidence="LOW")
    except Exception as e:
        logger.error(f"[NLU] LLM recognition error: {e}")
        result = NluResult(confidence="LOW")

    result.llm_used = True
    result.llm_model = model
    return result


# =============================================================================
# SERVICE
# =============================================================================

class NluService:
    """
    Recognizer bound to one OpenAI client.

    Only constructed when NLU is configured. The conversation handler treats
    a missing NluService as "NLU unavailable".
    """

    def __init__(self, openai_client: Any, model: str = "gpt-4o-mini"):
        self.client = openai_client
        self.model = model

    async def recognize(self, utterance: str) -> NluResult:
        """
        Recognize intent and entities in a user message.

        Deterministic building numbers take precedence over the LLM's location.
        """
        if not utterance or not utterance.strip():
            return NluResult()

        building = extract_building_number(utterance)
        if building is not None:
            logger.info(f"[NLU] Deterministic extraction: location={building}")

        result = await recognize_with_llm(utterance, self.client, self.model)

        if building is not None:
            result.entities = {**result.entities, "location": building}

        logger.info(f"[NLU] intent={result.intent} entities={result.entities}")
        return result
