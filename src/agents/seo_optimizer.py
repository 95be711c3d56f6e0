"""SEO rewriting of project texts.

The generative path asks a TextGenerator for a JSON object and validates it
before use. Any failure on that path (timeout, transport error, missing or
malformed JSON) resolves to ``basic_optimization``, a local deterministic
rewrite with a lower confidence.
"""
from __future__ import annotations

import asyncio
import json
import re
import string
import unicodedata
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.enums import SeoLanguage, SeoTone
from src.specs.common.errors import EnrichmentError
from src.specs.models.seo import AiSeoPayload, ContentAnalysis, EnrichedContent, SeoRequest
from .base import Agent
from .text_generator import TextGenerator

TITLE_MAX = 60
META_MAX = 160
DESCRIPTION_MIN_WORDS = 50
DESCRIPTION_MAX_WORDS = 300
META_WORDS = 25
MAX_KEYWORDS = 8

AI_CONFIDENCE_FLOOR = 0.6
AI_DEFAULT_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.5

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_SENTENCE_RE = re.compile(r"[.!?]+")

SYSTEM_PROMPTS = {
    SeoLanguage.EN: (
        "You are an SEO and digital marketing expert. "
        "You optimize content to improve its organic search ranking."
    ),
    SeoLanguage.FR: (
        "Tu es un expert en SEO et en marketing digital. "
        "Tu optimises les contenus pour améliorer leur référencement naturel."
    ),
}

TONE_NAMES = {
    SeoLanguage.EN: {SeoTone.PROFESSIONAL: "professional", SeoTone.CREATIVE: "creative", SeoTone.MINIMAL: "minimal"},
    SeoLanguage.FR: {SeoTone.PROFESSIONAL: "professionnel", SeoTone.CREATIVE: "créatif", SeoTone.MINIMAL: "minimaliste"},
}

TONE_INSTRUCTIONS = {
    SeoLanguage.EN: {
        SeoTone.PROFESSIONAL: [
            "Use sophisticated and precise vocabulary",
            "Emphasize expertise and results",
            "Include appropriate technical terms",
            "Adopt a formal but accessible style",
            "Include concrete metrics and achievements",
        ],
        SeoTone.CREATIVE: [
            "Use expressive and imaginative language",
            "Incorporate personality and emotion",
            "Favor metaphors and visual descriptions",
            "Adopt a dynamic and inspiring style",
            "Emphasize innovation and originality",
        ],
        SeoTone.MINIMAL: [
            "Prioritize conciseness and clarity",
            "Eliminate superfluous words",
            "Use short and impactful sentences",
            "Adopt a direct and efficient style",
            "Focus on the essential",
        ],
    },
    SeoLanguage.FR: {
        SeoTone.PROFESSIONAL: [
            "Utilisez un vocabulaire soutenu et précis",
            "Mettez l'accent sur l'expertise et les résultats",
            "Privilégiez les termes techniques appropriés",
            "Adoptez un style formel mais accessible",
            "Incluez des métriques et réalisations concrètes",
        ],
        SeoTone.CREATIVE: [
            "Utilisez un langage expressif et imagé",
            "Incorporez de la personnalité et de l'émotion",
            "Privilégiez les métaphores et descriptions visuelles",
            "Adoptez un style dynamique et inspirant",
            "Mettez l'accent sur l'innovation et l'originalité",
        ],
        SeoTone.MINIMAL: [
            "Privilégiez la concision et la clarté",
            "Éliminez les mots superflus",
            "Utilisez des phrases courtes et impactantes",
            "Adoptez un style direct et efficace",
            "Concentrez-vous sur l'essentiel",
        ],
    },
}

# Texts used by the local rewrite, per language.
FALLBACK_TEXTS = {
    SeoLanguage.EN: {
        "empty_title": "Professional Portfolio Project",
        "title_suffix": " - Professional Portfolio",
        "padding": (
            "This {category} project demonstrates technical and creative skills. "
            "Discover the approach behind it and the results achieved."
        ),
        "extra_keywords": ["portfolio", "design", "creative"],
        "suggestions": [
            "Use relevant keywords in the title",
            "Add more detail to the description",
            "Include a clear call-to-action",
        ],
    },
    SeoLanguage.FR: {
        "empty_title": "Projet de Portfolio Professionnel",
        "title_suffix": " - Portfolio Professionnel",
        "padding": (
            "Ce projet {category} démontre mes compétences techniques et créatives. "
            "Découvrez mon approche innovante et les résultats obtenus."
        ),
        "extra_keywords": ["portfolio", "design", "créatif"],
        "suggestions": [
            "Utilisez des mots-clés pertinents dans le titre",
            "Ajoutez plus de détails dans la description",
            "Incluez un call-to-action clair",
        ],
    },
}

RECOMMENDED_KEYWORDS = {
    SeoLanguage.EN: {
        "web-design": ["web design", "ui/ux", "user interface", "website", "responsive"],
        "graphic-design": ["graphic design", "visual identity", "design", "print"],
        "branding": ["branding", "brand identity", "logo", "brand guidelines"],
        "photography": ["photography", "photo", "portrait", "landscape", "commercial"],
        "illustration": ["illustration", "drawing", "digital art", "artwork"],
        "development": ["development", "programming", "coding", "application", "web"],
    },
    SeoLanguage.FR: {
        "web-design": ["design web", "ui/ux", "interface utilisateur", "site web", "responsive"],
        "graphic-design": ["design graphique", "identité visuelle", "création graphique", "print"],
        "branding": ["branding", "identité de marque", "logo", "charte graphique"],
        "photography": ["photographie", "photo", "shooting", "portrait", "paysage"],
        "illustration": ["illustration", "dessin", "art numérique", "création"],
        "development": ["développement", "programmation", "code", "application", "web"],
    },
}
_DEFAULT_RECOMMENDED = {
    SeoLanguage.EN: ["portfolio", "creative", "professional"],
    SeoLanguage.FR: ["portfolio", "créatif", "professionnel"],
}


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def generate_slug(text: str) -> str:
    ascii_text = unicodedata.normalize("NFD", text.lower()).encode("ascii", "ignore").decode("ascii")
    return _SLUG_RE.sub("-", ascii_text).strip("-") or "project"


def generate_meta_description(text: str) -> str:
    return truncate(" ".join(text.split()[:META_WORDS]), META_MAX)


def _tokens(text: str) -> List[str]:
    stripped = (w.strip(string.punctuation) for w in text.lower().split())
    return [w for w in stripped if w]


def _count_phrase(tokens: Sequence[str], phrase: Sequence[str]) -> int:
    size = len(phrase)
    if size == 0:
        return 0
    return sum(1 for i in range(len(tokens) - size + 1) if list(tokens[i:i + size]) == list(phrase))


def analyze_content(text: str, target_keywords: Optional[Sequence[str]] = None) -> ContentAnalysis:
    """Score a description for SEO. Pure; never calls the generative service."""
    tokens = _tokens(text)
    total_words = len(tokens)

    density: Dict[str, float] = {}
    for keyword in target_keywords or []:
        phrase = _tokens(keyword)
        density[keyword] = _count_phrase(tokens, phrase) / total_words if total_words else 0.0

    sentences = [s for s in _SENTENCE_RE.split(text) if s.strip()]
    if total_words and sentences:
        avg_words = total_words / len(sentences)
        readability = max(0.0, min(100.0, 206.835 - 1.015 * avg_words))
    else:
        readability = 0.0

    score = 50
    if 150 <= total_words <= 300:
        score += 20
    if readability > 60:
        score += 15
    if any(0.01 < d < 0.05 for d in density.values()):
        score += 15

    issues: List[str] = []
    improvements: List[str] = []
    if total_words < 100:
        issues.append("Description too short")
        improvements.append("Add more detail about the project")
    if total_words > 400:
        issues.append("Description too long")
        improvements.append("Condense the main content")
    if readability < 50:
        issues.append("Low readability")
        improvements.append("Use shorter sentences")
    if density and all(d < 0.01 for d in density.values()):
        issues.append("Keyword density too low")
        improvements.append("Include more relevant keywords")

    return ContentAnalysis(
        score=score,
        issues=issues,
        improvements=improvements,
        keywordDensity=density,
        readabilityScore=round(readability),
    )


def get_recommended_keywords(category: str, language: SeoLanguage = SeoLanguage.EN) -> List[str]:
    language = SeoLanguage(language)
    table = RECOMMENDED_KEYWORDS[language]
    return list(table.get(category, _DEFAULT_RECOMMENDED[language]))


class SeoOptimizer(Agent):
    name = "seo_optimizer"

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        *,
        batch_size: int = 5,
        batch_pause: float = 1.0,
        timeout: float = 60.0,
    ) -> None:
        super().__init__()
        self._generator = generator
        self.batch_size = max(1, batch_size)
        self.batch_pause = batch_pause
        self.timeout = timeout

    analyze_content = staticmethod(analyze_content)
    get_recommended_keywords = staticmethod(get_recommended_keywords)

    def build_prompt(self, request: SeoRequest) -> str:
        lang = request.language
        tone_name = TONE_NAMES[lang][request.tone]
        instructions = "\n".join(f"- {line}" for line in TONE_INSTRUCTIONS[lang][request.tone])
        tags = ", ".join(request.tags)
        keywords = ", ".join(request.targetKeywords or [])
        if lang == SeoLanguage.FR:
            lines = [
                f"Optimise ce contenu de portfolio pour le SEO avec un ton {tone_name} :",
                "",
                f"**Titre actuel :** {request.title}",
                f"**Description actuelle :** {request.description}",
                f"**Catégorie :** {request.category}",
                f"**Tags :** {tags}",
            ]
            if keywords:
                lines.append(f"**Mots-clés cibles :** {keywords}")
            lines += [
                "",
                f"**Instructions pour le ton {tone_name} :**",
                instructions,
                "",
                "Réponds uniquement avec un objet JSON :",
                '{"title": "titre optimisé (50-60 caractères)", '
                '"description": "description optimisée (150-300 mots)", '
                '"metaDescription": "meta description SEO (150-160 caractères)", '
                '"keywords": ["mot-clé1", "mot-clé2"], "slug": "url-slug-optimise", '
                '"confidence": 0.8, "suggestions": ["conseil 1", "conseil 2"]}',
            ]
        else:
            lines = [
                f"Optimize this portfolio content for SEO with a {tone_name} tone:",
                "",
                f"**Current Title:** {request.title}",
                f"**Current Description:** {request.description}",
                f"**Category:** {request.category}",
                f"**Tags:** {tags}",
            ]
            if keywords:
                lines.append(f"**Target Keywords:** {keywords}")
            lines += [
                "",
                f"**{tone_name.capitalize()} tone instructions:**",
                instructions,
                "",
                "Answer with a single JSON object only:",
                '{"title": "optimized title (50-60 characters)", '
                '"description": "optimized portfolio description (150-300 words)", '
                '"metaDescription": "SEO meta description (150-160 characters)", '
                '"keywords": ["keyword1", "keyword2"], "slug": "optimized-url-slug", '
                '"confidence": 0.8, "suggestions": ["suggestion 1", "suggestion 2"]}',
            ]
        return "\n".join(lines)

    def parse_ai_response(self, content: str, request: SeoRequest) -> EnrichedContent:
        """Validate generator output. Raises EnrichmentError when unusable."""
        match = _JSON_OBJECT_RE.search(content or "")
        if not match:
            raise EnrichmentError("No JSON object in generator response")
        try:
            payload = AiSeoPayload.model_validate(json.loads(match.group(0)))
        except (ValueError, ValidationError) as exc:
            raise EnrichmentError(f"Malformed generator response: {exc}") from exc

        description = payload.description.strip()
        confidence = payload.confidence if payload.confidence is not None else AI_DEFAULT_CONFIDENCE
        keywords = [k.strip() for k in payload.keywords if k.strip()] or [t.lower() for t in request.tags]
        return EnrichedContent(
            title=truncate(payload.title.strip(), TITLE_MAX),
            description=description,
            metaDescription=truncate((payload.metaDescription or "").strip(), META_MAX)
            or generate_meta_description(description),
            keywords=keywords[:MAX_KEYWORDS],
            slug=generate_slug(payload.slug or payload.title),
            confidence=max(AI_CONFIDENCE_FLOOR, confidence),
            suggestions=payload.suggestions,
            source="ai",
        )

    def basic_optimization(self, request: SeoRequest) -> EnrichedContent:
        texts = FALLBACK_TEXTS[request.language]

        title = " ".join(request.title.split())
        if not title:
            title = texts["empty_title"]
        elif len(title) > TITLE_MAX:
            title = truncate(title, TITLE_MAX)
        elif len(title) < 30:
            title = title + texts["title_suffix"]

        words = request.description.split()
        if len(words) < DESCRIPTION_MIN_WORDS:
            padding = texts["padding"].format(category=request.category)
            description = " ".join(words + [padding]) if words else padding
        elif len(words) > DESCRIPTION_MAX_WORDS:
            description = " ".join(words[:DESCRIPTION_MAX_WORDS]) + "..."
        else:
            description = " ".join(words)

        keywords: List[str] = []
        candidates = [*(request.targetKeywords or []), *request.tags, request.category, *texts["extra_keywords"]]
        for candidate in candidates:
            keyword = candidate.strip().lower()
            if keyword and keyword not in keywords:
                keywords.append(keyword)

        return EnrichedContent(
            title=title,
            description=description,
            metaDescription=generate_meta_description(description),
            keywords=keywords[:MAX_KEYWORDS],
            slug=generate_slug(request.title),
            confidence=FALLBACK_CONFIDENCE,
            suggestions=list(texts["suggestions"]),
            source="fallback",
        )

    async def optimize_content(self, request: SeoRequest) -> EnrichedContent:
        if self._generator is None:
            return self.basic_optimization(request)
        try:
            raw = await asyncio.wait_for(
                self._generator.complete(SYSTEM_PROMPTS[request.language], self.build_prompt(request)),
                timeout=self.timeout,
            )
            result = self.parse_ai_response(raw, request)
        except Exception as exc:
            log_warning(
                self._run_trace_id,
                "seo:fallback",
                **self.log_dimensions(title=request.title, error=str(exc) or type(exc).__name__),
            )
            return self.basic_optimization(request)
        log_info(
            self._run_trace_id,
            "seo:optimized",
            **self.log_dimensions(title=request.title, confidence=result.confidence),
        )
        return result

    async def _optimize_isolated(self, request: SeoRequest) -> EnrichedContent:
        try:
            return await self.optimize_content(request)
        except Exception as exc:
            log_warning(self._run_trace_id, "seo:item_failed", **self.log_dimensions(title=request.title, error=str(exc)))
            return self.basic_optimization(request)

    async def batch_optimize(self, requests: Sequence[SeoRequest]) -> List[EnrichedContent]:
        """One result per request, in order. Chunks run concurrently, chunk after chunk."""
        results: List[EnrichedContent] = []
        size = self.batch_size
        for start in range(0, len(requests), size):
            chunk = requests[start:start + size]
            results.extend(await asyncio.gather(*(self._optimize_isolated(r) for r in chunk)))
            if start + size < len(requests):
                await asyncio.sleep(self.batch_pause)
        return results

    async def run(self, requests: Sequence[SeoRequest]) -> List[EnrichedContent]:
        return await self.batch_optimize(requests)


__all__ = [
    "SeoOptimizer",
    "analyze_content",
    "get_recommended_keywords",
    "generate_slug",
    "generate_meta_description",
    "truncate",
    "AI_CONFIDENCE_FLOOR",
    "FALLBACK_CONFIDENCE",
]
