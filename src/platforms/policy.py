from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Optional, Tuple


@dataclass(frozen=True)
class PlatformPolicy:
    """Product rules applied while converting a platform's items.

    ``category_table`` is ordered; the first signal on an item that has an
    entry decides the category. Matching ignores case.
    """

    canonical_tag: str
    fallback_category: str
    featured_threshold: int
    category_table: Tuple[Tuple[str, str], ...]
    _lookup: Dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lookup: Dict[str, str] = {}
        for signal, category in self.category_table:
            lookup.setdefault(signal.lower(), category)
        object.__setattr__(self, "_lookup", lookup)

    def derive_category(self, signals: Iterable[Optional[str]]) -> str:
        for signal in signals:
            if not signal:
                continue
            category = self._lookup.get(signal.lower())
            if category:
                return category
        return self.fallback_category

    def is_featured(self, popularity: int) -> bool:
        return popularity > self.featured_threshold

    def with_overrides(self, **changes) -> "PlatformPolicy":
        return replace(self, **changes)


def _table(mapping: Iterable[Tuple[Tuple[str, ...], str]]) -> Tuple[Tuple[str, str], ...]:
    return tuple((signal, category) for signals, category in mapping for signal in signals)


GITHUB_POLICY = PlatformPolicy(
    canonical_tag="GitHub",
    fallback_category="development",
    featured_threshold=10,
    category_table=_table([
        (("JavaScript", "TypeScript", "React", "Vue", "Angular", "HTML", "CSS", "SCSS"), "web-development"),
        (("Python", "Java", "C#", "Go", "Rust", "PHP", "Ruby"), "backend-development"),
        (("Swift", "Kotlin", "Dart", "Flutter"), "mobile-development"),
        (("C++", "C"), "system-programming"),
        (("Shell", "Dockerfile", "YAML"), "devops"),
    ]),
)

BEHANCE_POLICY = PlatformPolicy(
    canonical_tag="Behance",
    fallback_category="design",
    featured_threshold=50,
    category_table=(
        ("Graphic Design", "graphic-design"),
        ("Web Design", "web-design"),
        ("UI/UX", "ui-ux"),
        ("Branding", "branding"),
        ("Illustration", "illustration"),
        ("Photography", "photography"),
        ("Motion Graphics", "motion-graphics"),
        ("Art Direction", "art-direction"),
        ("Architecture", "architecture"),
        ("Fashion", "fashion"),
        ("Industrial Design", "industrial-design"),
        ("Interaction Design", "interaction-design"),
        ("Product Design", "product-design"),
        ("Packaging", "packaging"),
    ),
)

DRIBBBLE_POLICY = PlatformPolicy(
    canonical_tag="Dribbble",
    fallback_category="design",
    featured_threshold=100,
    category_table=_table([
        (("ui", "ux"), "ui-ux"),
        (("web",), "web-design"),
        (("mobile", "app"), "mobile-design"),
        (("logo", "branding", "identity"), "branding"),
        (("illustration",), "illustration"),
        (("icon",), "icon-design"),
        (("typography",), "typography"),
        (("print", "poster"), "print-design"),
        (("packaging",), "packaging"),
        (("motion", "animation"), "motion-graphics"),
        (("photography",), "photography"),
        (("mockup",), "mockup"),
    ]),
)


__all__ = [
    "PlatformPolicy",
    "GITHUB_POLICY",
    "BEHANCE_POLICY",
    "DRIBBBLE_POLICY",
]
