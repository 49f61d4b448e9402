from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Type

from openai import OpenAI
from pydantic import ValidationError

from mealcart.config import Settings
from mealcart.core.models import CanonRequest, CanonResponse, ExtractionRequest, ExtractionResponse
from .exceptions import ExtractionError, LLMError, ResolverError

logger = logging.getLogger(__name__)

EXTRACT_SYSTEM_PROMPT = """You are a deterministic recipe parser.
Input JSON: {"t": String, "s": Int?}. "t" is RAW OCR text of one recipe (title, ingredients and steps mixed);
"s" is an optional servings hint.

Output STRICT JSON only: {"r":String?,"s":Int?,"i":[{"n":String,"q":Number?,"u":String?}],"p":[String]?}

Title "r": usually the first line with no quantity, unit or action verb, 2 to 12 words. null when unsure.

Rules:
1) Keep ingredients only. Ignore headers ("ingredients"), sections ("preparation", "cuisson", "etape"),
   oven settings, durations and sentences driven by action verbs.
2) Quantities: "200,5" -> 200.5; fractions "1/2", "½" -> 0.5; mixed "1 1/2" -> 1.5; ranges "2-3" -> 2.5;
   "400g" -> q=400,u=g; ignore "~"/"env.". "un/une" = 1 for piece units. "q" is a JSON number or null.
   Package case: "1 boite de 400 g de tomates" -> {"n":"tomates (400 g)","q":1,"u":"boite"}.
3) Units, singular, from [g,kg,mg,ml,cl,l,cs,cac,oeuf,gousse,sachet,tranche,brique,pincee,boite,branche].
   "cuillere a soupe" -> cs, "cuillere a cafe" -> cac.
   The unit MUST appear on the same line as the ingredient or stuck to the number. Never reuse a unit
   from another line. When in doubt, "u": null.
4) Name "n": drop leading "de/du/des/d'"; keep it short.
5) Servings "s": copy the input "s" when present, else null.
6) Same normalized name and unit twice: keep one item, add quantities when obvious.
7) Steps "p": 3 to 12 short imperative steps when instructions exist, else null.
No free text outside the JSON."""

CANONICALIZE_SYSTEM_PROMPT = """You map recipe ingredients onto a catalog. Reply with one valid json object only.

Input: {"items":[{"n":String,"q":Number|null,"u":String|null}], "candidates":{"0":[{"id":Int,"name":String,
"canonicalName":String|null}], "1":[...]}}. Candidate keys are item indexes 0..N-1 as strings.

Output: {"mapped":[{"idx":Int,"canonical_id":Int|null,"canonical_name":String|null,"confidence":Number}]}
- EXACTLY N entries, same order as items, one per index, no omissions, no duplicates.
- Never invent ids or names outside candidates[idx].
- canonical_name = candidate canonicalName if present, else its name.
- confidence in [0,1], two decimals. No satisfying candidate: null id and name, confidence <= 0.5.

Matching, in order:
1) Case-insensitive equality between item.n and the candidate name -> confidence >= 0.95.
2) Otherwise compare normalized tokens (lowercase, no accents, no punctuation, basic plurals removed)
   and score by token overlap ("huile d'olive" == "huile olive", "tomates concassees" ~ "tomate concassee").
3) Ties: prefer the shorter name.
Do not touch "q" or "u"."""


def _chat_json(client: OpenAI, model: str, system: str, payload_json: str) -> str:
    resp = client.chat.completions.create(
        model=model,
        temperature=0,
        response_format={"type": "json_object"},
        messages=[{"role": "system", "content": system},
                  {"role": "user", "content": payload_json}],
    )
    content = resp.choices[0].message.content if resp.choices else None
    if not content:
        raise ValueError("empty response")
    return content


def _build_client(settings: Settings, error_cls: Type[LLMError]) -> OpenAI:
    if not settings.openai_api_key:
        raise error_cls("OpenAI not configured (OPENAI_API_KEY missing)")
    try:
        return OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    except Exception as e:
        raise error_cls("Could not initialize OpenAI client") from e


class RecipeExtractor(ABC):
    """Turns raw recipe text into structured ingredient lines."""
    @abstractmethod
    def extract(self, request: ExtractionRequest) -> ExtractionResponse: ...


class CanonicalResolver(ABC):
    """Picks one catalog id per item among precomputed candidates."""
    @abstractmethod
    def resolve(self, request: CanonRequest) -> CanonResponse: ...


class OpenAIRecipeExtractor(RecipeExtractor):
    def __init__(self, settings: Settings):
        self._client = _build_client(settings, ExtractionError)
        self._model = settings.openai_model_extract

    def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        try:
            content = _chat_json(self._client, self._model, EXTRACT_SYSTEM_PROMPT,
                                 request.model_dump_json(exclude_none=True))
            return ExtractionResponse.model_validate_json(content)
        except ValidationError as e:
            raise ExtractionError(f"Malformed extraction response: {e}") from e
        except Exception as e:
            # No fallback: bubble details up
            raise ExtractionError(f"OpenAI extract failed: {e}") from e


class OpenAICanonicalResolver(CanonicalResolver):
    def __init__(self, settings: Settings):
        self._client = _build_client(settings, ResolverError)
        self._model = settings.openai_model_canonicalize

    def resolve(self, request: CanonRequest) -> CanonResponse:
        try:
            content = _chat_json(self._client, self._model, CANONICALIZE_SYSTEM_PROMPT,
                                 request.model_dump_json(by_alias=True))
            response = CanonResponse.model_validate_json(content)
        except ValidationError as e:
            raise ResolverError(f"Malformed canonicalization response: {e}") from e
        except Exception as e:
            raise ResolverError(f"OpenAI canonicalize failed: {e}") from e
        if len(response.mapped) != len(request.items):
            logger.warning("resolver returned %d mappings for %d items",
                           len(response.mapped), len(request.items))
        return response
