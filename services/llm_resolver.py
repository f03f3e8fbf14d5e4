# services/llm_resolver.py
"""
External resolver backed by a hosted chat-completion model.
- Builds a JSON prompt from the skeleton bone names and the missing slots.
- Posts it with httpx, extracts the JSON reply (fenced ```json block or bare JSON).
- Validates the reply strictly: any bad entry fails the whole response.
Functions:
- validate_llm_response(payload, skeleton, targets)
- OpenAiResolver(...)(request) -> LlmResolverResult   (async)
- resolver_from_env()
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import httpx

from services import settings
from services.bone_mapper import Skeleton
from services.errors import LlmRequestError, LlmResponseError, LlmTransportError, LlmValidationError
from services.humanoid_schema import HUMANOID_SLOTS

LOG = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a bone mapping assistant. Reply only with JSON, no prose."
_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _reject_constant(token: str):
    raise ValueError(f"non-finite number {token}")


@dataclass(frozen=True)
class LlmSuggestion:
    slot: str
    source: Optional[str]
    confidence: Optional[float] = None
    reasoning: Optional[str] = None

    def to_dict(self) -> dict:
        return {"target": self.slot, "source": self.source,
                "confidence": self.confidence, "reasoning": self.reasoning}


@dataclass(frozen=True)
class LlmResolverRequest:
    skeleton: Skeleton
    targets: Optional[Sequence[str]] = None
    context: Optional[str] = None


@dataclass
class LlmResolverResult:
    suggestions: List[LlmSuggestion] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    model: Optional[str] = None
    raw: Any = None

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "warnings": list(self.warnings),
            "model": self.model,
        }


@dataclass
class LlmValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[LlmSuggestion] = field(default_factory=list)


LlmResolver = Callable[[LlmResolverRequest], Awaitable[LlmResolverResult]]


def normalize_targets(targets: Optional[Sequence[str]]) -> List[str]:
    return list(targets) if targets is not None else list(HUMANOID_SLOTS)


def extract_json_payload(content: str) -> str:
    match = _FENCED_JSON.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def validate_llm_response(payload: Any, skeleton: Skeleton,
                          targets: Optional[Sequence[str]] = None) -> LlmValidationResult:
    errors: List[str] = []
    warnings: List[str] = []
    target_set = set(normalize_targets(targets))
    bone_names = set(skeleton.bone_names())

    if not isinstance(payload, dict):
        return LlmValidationResult(False, ["Response is not an object"], warnings, [])

    entries = payload.get("mappings")
    if not isinstance(entries, list):
        return LlmValidationResult(False, ["Response is missing a mappings array"], warnings, [])

    seen_targets = set()
    seen_sources = set()
    suggestions: List[LlmSuggestion] = []

    for entry in entries:
        if not isinstance(entry, dict):
            errors.append("Mapping entry is not an object")
            continue

        target = entry.get("target")
        if not target or not isinstance(target, str):
            errors.append("Mapping entry missing target")
            continue
        if target not in target_set:
            errors.append(f"Unknown target: {target}")
            continue
        if target in seen_targets:
            errors.append(f"Duplicate target mapping for {target}")
            continue

        source = entry.get("source")
        if source is not None and not isinstance(source, str):
            errors.append(f"Invalid source for target {target}")
            continue
        if source and source not in bone_names:
            errors.append(f"Unknown source bone {source} for target {target}")
            continue

        confidence = entry.get("confidence")
        if confidence is not None:
            # bool is an int subclass, reject it explicitly
            if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
                errors.append(f"Confidence for {target} is not a number")
                continue
            # NaN fails the chained comparison
            if not 0.0 <= confidence <= 1.0:
                errors.append(f"Confidence for {target} must be between 0 and 1")
                continue
            confidence = float(confidence)

        if source:
            if source in seen_sources:
                warnings.append(f"Source bone {source} mapped more than once")
            else:
                seen_sources.add(source)

        reasoning = entry.get("reasoning")
        seen_targets.add(target)
        suggestions.append(LlmSuggestion(
            slot=target,
            source=source or None,
            confidence=confidence,
            reasoning=reasoning if isinstance(reasoning, str) else None,
        ))

    return LlmValidationResult(not errors, errors, warnings, suggestions)


def build_prompt(skeleton: Skeleton, targets: Sequence[str], context: Optional[str] = None) -> str:
    payload = {
        "instruction": "Map the provided source skeleton bones to humanoid target bones.",
        "targets": list(targets),
        "sourceBones": skeleton.bone_names(),
        "responseFormat": "Return JSON with { mappings: [{ target, source, confidence, reasoning }] }.",
        "context": context,
    }
    return json.dumps(payload, indent=2)


class OpenAiResolver:
    def __init__(self, api_key: str, model: str | None = None, base_url: str | None = None,
                 temperature: float | None = None, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.model = model or settings.LLM_MODEL
        self.base_url = base_url or settings.LLM_BASE_URL
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.timeout = settings.LLM_TIMEOUT if timeout is None else timeout
        # tests inject httpx.MockTransport here
        self.transport = transport

    async def __call__(self, request: LlmResolverRequest) -> LlmResolverResult:
        targets = normalize_targets(request.targets)
        body = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(request.skeleton, targets, request.context)},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        LOG.info("requesting %d slot suggestions from %s", len(targets), self.model)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(self.base_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise LlmTransportError(f"LLM request failed: {type(e).__name__}: {e}")
        if r.status_code < 200 or r.status_code >= 300:
            raise LlmRequestError(r.status_code, r.text)

        try:
            data = r.json()
        except ValueError:
            raise LlmResponseError("LLM response body is not JSON")

        content = None
        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise LlmResponseError("LLM response missing content")

        try:
            parsed = json.loads(extract_json_payload(content), parse_constant=_reject_constant)
        except ValueError as e:
            raise LlmResponseError(f"LLM response is not valid JSON: {e}")

        validation = validate_llm_response(parsed, request.skeleton, targets)
        if not validation.valid:
            raise LlmValidationError(validation.errors)

        return LlmResolverResult(
            suggestions=validation.suggestions,
            warnings=validation.warnings,
            model=data.get("model") or self.model,
            raw=parsed,
        )


async def resolve_with_llm(resolver: LlmResolver, request: LlmResolverRequest) -> LlmResolverResult:
    return await resolver(request)


def resolver_from_env() -> Optional[OpenAiResolver]:
    """
    OpenAiResolver when OPENAI_API_KEY is configured, otherwise None (heuristics only).
    """
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAiResolver(api_key=settings.OPENAI_API_KEY)
