"""Pattern tables used by the heuristic scorers.

Each family is a tuple of ``PatternRule`` rows so it can be tuned through
config overrides and tested without the scoring arithmetic around it.
``weight`` is the per-row adjustment where a family applies one (title and
metadata boosts, context relevance); elsewhere it is 1.0 and callers only
count matches.
"""
from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict


class PatternRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    pattern: re.Pattern
    category: str
    weight: float = 1.0

    def count(self, text: str) -> int:
        return sum(1 for _ in self.pattern.finditer(text))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


class TermCategory(BaseModel):
    """Keyword list plus patterns for one relevance topic or persona field."""
    model_config = ConfigDict(frozen=True)

    keywords: tuple[str, ...] = ()
    patterns: tuple[re.Pattern, ...] = ()
    weight: float = 1.0

    def keyword_hits(self, lowered_text: str) -> int:
        return sum(1 for k in self.keywords if k.lower() in lowered_text)

    def pattern_hits(self, text: str) -> int:
        return sum(1 for p in self.patterns if p.search(text))


def rule(regex: str, category: str, weight: float = 1.0, flags: int = re.IGNORECASE) -> PatternRule:
    return PatternRule(pattern=re.compile(regex, flags), category=category, weight=weight)


def _ci(*regexes: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(r, re.IGNORECASE) for r in regexes)


def count_matches(text: str, rules: Iterable[PatternRule], category: str | None = None) -> int:
    """Total match occurrences, optionally limited to one category."""
    return sum(r.count(text) for r in rules if category is None or r.category == category)


def matched_categories(text: str, rules: Iterable[PatternRule]) -> list[str]:
    """Categories with at least one matching row, in table order."""
    found: list[str] = []
    for r in rules:
        if r.category not in found and r.matches(text):
            found.append(r.category)
    return found


# Authority ---------------------------------------------------------------

AUTHORITY_DOMAIN_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(\.edu|\.ac\.|arxiv\.org|pubmed|doi\.org|scholar\.google|jstor|ieee|acm\.org)\b", "academic"),
    rule(r"\b(\.gov|\.mil|whitehouse\.gov|congress\.gov|europa\.eu|who\.int)\b", "government"),
    rule(r"\b(\.org|wikipedia\.org|archive\.org|reuters\.org)\b", "nonprofit"),
    rule(
        r"\b(twitter\.com|facebook\.com|instagram\.com|linkedin\.com|tiktok\.com|reddit\.com|medium\.com)\b",
        "social_media",
    ),
)

AUTHORITY_TITLE_RULES: tuple[PatternRule, ...] = (
    rule(
        r"\b(study|research|analysis|journal|paper|review|findings|data|evidence|methodology|peer[\s-]?review)\b",
        "academic",
        0.05,
    ),
    rule(r"\b(official|report|statement|announcement|policy|guidelines|standards|specification)\b", "official", 0.03),
    rule(
        r"\b(shocking|amazing|unbelievable|secret|hidden|exposed|explosive|breaking|urgent|must[\s-]?see)\b",
        "sensational",
        -0.05,
    ),
    rule(r"\b(opinion|editorial|op[\s-]?ed|commentary|blog|rant|my[\s-]?take)\b", "opinion", -0.02),
)

# The category prefix selects the value a row is tested against: author or
# byline, publisher name, or declared content type.
AUTHORITY_METADATA_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(phd|ph\.d\.|dr\.|prof\.|professor|md|m\.d\.)(?!\w)", "author_credentials", 0.04),
    rule(r"\b(university|institute|college|lab|laboratory|department)\b", "author_affiliation", 0.02),
    rule(
        r"\b(nature|science|cell|lancet|nejm|bmj|plos|ieee|acm|springer|elsevier|wiley)\b",
        "publication_academic",
        0.06,
    ),
    rule(r"\b(reuters|ap|bbc|npr|pbs|economist|guardian|times|post|journal)\b", "publication_news", 0.03),
    rule(r"peer[\s-]?review", "review_type", 0.08),
)

# Content -----------------------------------------------------------------

CONTENT_RULES: tuple[PatternRule, ...] = (
    # specificity indicators
    rule(r"\b(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2})\b", "specificity", flags=0),
    rule(r"\b\d+(\.\d+)?(%|percent|dollars?|years?|months?|days?|hours?|minutes?)", "specificity"),
    rule(r"\b(according to|cited by|reported by|published in|stated that)\b", "specificity"),
    rule(r"\b(specifically|particularly|precisely|exactly|approximately)\b", "specificity"),
    rule(r"\b([A-Z][a-z]+ [A-Z][a-z]+)\b", "specificity", flags=0),
    rule(r"\b[A-Z][a-z]+(?: [A-Z][a-z]+)* (University|Institute|Corporation|Company|Inc|Ltd)\b", "specificity", flags=0),
    # vagueness
    rule(r"\b(some|many|several|various|numerous|often|sometimes|usually|generally|typically)\b", "vague"),
    rule(r"\b(thing|stuff|something|anything|everything|nothing|someone|anyone|everyone)\b", "vague"),
    rule(r"\b(probably|maybe|perhaps|possibly|might|could|would|should)\b", "vague"),
    rule(r"\b(seems?|appears?|looks? like|sounds? like)\b", "vague"),
    # structure
    rule(r"\b(first|second|third|finally|in conclusion|furthermore|moreover|however|therefore)\b", "structural"),
    rule(r"\b(for example|such as|including|namely|specifically)\b", "structural"),
    rule(r"[.!?]\s+[A-Z]", "structural", flags=0),
    rule(r":\s*[A-Z]", "structural", flags=0),
    # formality
    rule(r"\b(research|study|analysis|data|evidence|methodology|findings|results)\b", "formality"),
    rule(r"\b(demonstrated|established|indicated|revealed|confirmed|suggested)\b", "formality"),
    rule(r"\b(significant|substantial|considerable|notable|important|crucial)\b", "formality"),
    # density and coherence signals
    rule(r"\b(just|really|very|quite|rather|somewhat|kind of|sort of|like|you know|I mean)\b", "filler"),
    rule(r"\b(\d+(\.\d+)?|[A-Z][a-z]+ \d{1,2}, \d{4}|Q\d \d{4}|\d{4}-\d{2}-\d{2})\b", "fact", flags=0),
    rule(
        r"\b(however|therefore|furthermore|moreover|consequently|nevertheless|meanwhile|finally"
        r"|in addition|for example|in contrast|similarly)\b",
        "transition",
    ),
    rule(r"\b\w+ed\b", "past_tense", flags=0),
    rule(r"\b(is|are|has|have|does|do)\b", "present_tense"),
    rule(r"\b(but|however|although|despite|nevertheless|nonetheless|on the other hand)\b", "contradiction"),
)

# Recency -----------------------------------------------------------------

CONTENT_TYPE_ORDER: tuple[str, ...] = ("news", "academic", "reference", "historical")

RECENCY_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(breaking|news|report|announced|today|yesterday|this week|this month)\b", "news"),
    rule(r"\b(reuters|ap|bbc|cnn|fox|nbc|abc|cbs|guardian|times|post)\b", "news"),
    rule(r"\b(press release|statement|announcement|update)\b", "news"),
    rule(r"\b(study|research|journal|paper|peer[\s-]?review|methodology|findings|analysis)\b", "academic"),
    rule(r"\b(university|institute|professor|dr\.|phd|published|citation)(?!\w)", "academic"),
    rule(r"\b(hypothesis|experiment|data|statistical|correlation|significant)\b", "academic"),
    rule(r"\b(wikipedia|encyclopedia|manual|guide|documentation|specification)\b", "reference"),
    rule(r"\b(definition|reference|handbook|textbook|standard)\b", "reference"),
    rule(r"\b(overview|introduction|summary|background)\b", "reference"),
    rule(r"\b(historical|archive|retrospective|timeline|chronology|legacy)\b", "historical"),
    rule(r"\b(founded|established|originally|traditionally|historically)\b", "historical"),
    rule(r"\b(decades? ago|years? ago|century|ancient|vintage|classic)\b", "historical"),
    rule(r"\b(mathematics?|physics?|chemistry|biology|philosophy|logic|ethics)\b", "timeless"),
    rule(r"\b(algorithm|theory|principle|law|theorem|definition|concept)\b", "timeless"),
    rule(r"\b(fundamental|basic|core|essential|universal|eternal)\b", "timeless"),
    rule(r"\b(fact|data|statistics?|evidence|proof|documentation|record)\b", "factual"),
    rule(r"\b(according to|based on|cited|referenced|documented|verified)\b", "factual"),
    rule(r"(\b\d+%|\b\d+\.\d+\b|\b(approximately|exactly|precisely)\b)", "factual"),
    rule(r"\b(i think|in my opinion|i believe|personally|i feel|arguably|supposedly)\b", "opinion"),
    rule(r"\b(should|ought|must|need to|have to|subjective|bias)\b", "opinion"),
    rule(r"\b(breaking|urgent|latest|current|now|today|yesterday|this week)\b", "freshness"),
    rule(r"\b(update|announcement|alert|development|happening)\b", "freshness"),
    rule(r"\b(stock|price|market|trading|earnings|financial)\b", "freshness"),
    rule(r"\b(weather|forecast|emergency|crisis|outbreak)\b", "freshness"),
)

# Corroboration -----------------------------------------------------------

SYNDICATION_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(AP|Reuters|Bloomberg|Associated Press)\b", "wire"),
    rule(r"\b(syndicated|wire service|news service)\b", "syndicated"),
    rule(r"\b(originally published|first published|republished)\b", "republished"),
)

RELATED_DOMAIN_GROUPS: tuple[tuple[str, ...], ...] = (
    ("cnn.com", "edition.cnn.com"),
    ("bbc.com", "bbc.co.uk"),
    ("reuters.com", "reuters.org"),
    ("nytimes.com", "nyti.ms"),
    ("washingtonpost.com", "wapo.st"),
    ("theguardian.com", "guardian.co.uk"),
)

# Relevance ---------------------------------------------------------------

TOPIC_CATEGORIES: dict[str, TermCategory] = {
    "career": TermCategory(
        keywords=("job", "work", "career", "profession", "employment", "company", "position", "role", "title",
                  "experience"),
        patterns=_ci(
            r"\b(worked at|employed by|position at|role as|experience in)\b",
            r"\b(software engineer|developer|manager|director|ceo|cto|analyst)\b",
            r"\b(years? of experience|background in|specialized in)\b",
        ),
        weight=1.0,
    ),
    "education": TermCategory(
        keywords=("education", "school", "university", "college", "degree", "graduate", "study", "major", "phd",
                  "master"),
        patterns=_ci(
            r"\b(graduated from|degree in|studied at|phd in|master of)\b",
            r"\b(university|college|institute|school)\b",
            r"\b(bachelor|master|doctorate|phd|mba)\b",
        ),
        weight=0.9,
    ),
    "skills": TermCategory(
        keywords=("skill", "ability", "expertise", "proficient", "experienced", "knowledge", "competent", "capable"),
        patterns=_ci(
            r"\b(skilled in|expertise in|proficient at|experienced with)\b",
            r"\b(programming|coding|development|design|analysis|management)\b",
            r"\b(python|javascript|react|aws|machine learning|data science)\b",
        ),
        weight=0.8,
    ),
    "personal": TermCategory(
        keywords=("interests", "hobbies", "passion", "enjoys", "likes", "loves", "personal", "family", "married"),
        patterns=_ci(
            r"\b(interested in|passionate about|enjoys|hobby|personal interest)\b",
            r"\b(married to|spouse|partner|children|family)\b",
            r"\b(travels|sports|music|reading|cooking|photography)\b",
        ),
        weight=0.6,
    ),
    "achievements": TermCategory(
        keywords=("award", "recognition", "achievement", "accomplishment", "success", "winner", "published",
                  "patent"),
        patterns=_ci(
            r"\b(won|awarded|recognized|achieved|accomplished)\b",
            r"\b(published|authored|patent|invention|breakthrough)\b",
            r"\b(first place|winner|champion|excellence)\b",
        ),
        weight=0.7,
    ),
}

PERSONA_FIELDS: dict[str, TermCategory] = {
    "name": TermCategory(
        keywords=("name", "called", "known as", "mr", "ms", "dr"),
        patterns=_ci(r"\b(known as|called|name is|named)\b"),
        weight=1.0,
    ),
    "job_title": TermCategory(
        keywords=("title", "position", "role", "job", "works as", "employed as"),
        patterns=_ci(
            r"\b(software engineer|developer|manager|director|analyst|consultant)\b",
            r"\b(works as|employed as|position of|title of|role as)\b",
        ),
        weight=0.9,
    ),
    "company": TermCategory(
        keywords=("company", "organization", "firm", "corporation", "startup", "works at"),
        patterns=_ci(
            r"\b(works at|employed by|company|corporation|inc|ltd|llc)\b",
            r"\b(Google|Microsoft|Amazon|Apple|Facebook|Meta|Netflix|Tesla)\b",
        ),
        weight=0.9,
    ),
    "education": TermCategory(
        keywords=("education", "degree", "university", "college", "graduated", "studied"),
        patterns=_ci(
            r"\b(graduated from|degree in|studied at|university|college)\b",
            r"\b(bachelor|master|phd|mba|bs|ms|ba|ma)\b",
        ),
        weight=0.8,
    ),
    "location": TermCategory(
        keywords=("location", "lives", "based", "from", "city", "state", "country"),
        patterns=_ci(r"\b(lives in|based in|from|located in|resides in)\b"),
        weight=0.7,
    ),
}

# Row weight is the contextual relevance of the detected context.
CONTEXT_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(work|job|career|professional|business|corporate|company|office)\b", "professional", 0.9),
    rule(r"\b(meeting|project|team|client|deadline|presentation|budget)\b", "professional", 0.9),
    rule(r"\b(strategy|leadership|management|development|innovation)\b", "professional", 0.9),
    rule(r"\b(personal|family|home|private|individual|self|own)\b", "personal", 0.6),
    rule(r"\b(hobby|interest|passion|enjoy|like|love|prefer)\b", "personal", 0.6),
    rule(r"\b(weekend|vacation|travel|leisure|entertainment)\b", "personal", 0.6),
    rule(r"\b(education|academic|school|university|college|study|research)\b", "educational", 0.8),
    rule(r"\b(learn|knowledge|understanding|analysis|theory|practice)\b", "educational", 0.8),
    rule(r"\b(course|curriculum|degree|certification|training)\b", "educational", 0.8),
    rule(r"\b(social|community|friends|network|relationship|group)\b", "social", 0.5),
    rule(r"\b(volunteer|charity|cause|organization|society|club)\b", "social", 0.5),
    rule(r"\b(event|gathering|conference|meetup|party|celebration)\b", "social", 0.5),
)

DOMAIN_SPECIFICITY_RULES: tuple[PatternRule, ...] = (
    rule(r"\b[A-Z]{2,}\b", "acronym", flags=0),
    rule(r"\b\d+(\.\d+)?[a-zA-Z]+\b", "unit", flags=0),
    rule(r"\b[a-z]+\.[a-z]+\.[a-z]+\b", "dotted_notation", flags=0),
    rule(r"\b[A-Z][a-z]+[A-Z][a-z]+\b", "camel_case", flags=0),
    rule(r"\b\w+@\w+\.\w+\b", "email", flags=0),
    rule(r"\bhttps?://\S+\b", "url", flags=0),
)

# Confidence --------------------------------------------------------------

NEGATION_RULES: tuple[PatternRule, ...] = (
    rule(r"\b(not|never|no|isn't|wasn't|didn't|won't|can't|doesn't)\s", "negation"),
)
