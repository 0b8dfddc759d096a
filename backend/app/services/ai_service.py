"""
AI Collaboration Service - Compatibility analysis, format ideas, outreach drafts

Three LLM-backed operations used by the match pipeline and the outreach
endpoint. None of them raise on transient failures: a missing key, a
transport error, unparseable output, or output of the wrong shape all select
a deterministic local fallback.

Parsing:
    LLM output is treated as untrusted text. parse_llm_json() strips markdown
    fences, extracts the first JSON object/array and returns a tagged
    ParsedResponse; the payload is then validated with pydantic before use.

Fallbacks:
    - Compatibility: follower-ratio + engagement-difference heuristic
    - Formats: fixed list, with in-person ideas first for creators < 30 miles apart
    - Outreach: template message
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from app.exceptions import LLMUnavailableError
from app.middleware.metrics import record_ai_fallback
from app.services.llm import LLMClient

logger = logging.getLogger(__name__)

# Creators closer than this get in-person collaboration ideas
LOCAL_DISTANCE_MILES = 30


@dataclass
class CreatorProfile:
    """
    Platform-level view of a creator passed to the AI prompts.

    Attributes:
        platform: instagram, tiktok or youtube
        followers: Follower/subscriber count
        engagement: Engagement rate in percent
        recent_topics: Up to 5 topic tags
        name/city/state: Owner details (used for the outreach sender)
        username/display_name: Account handle and display name
        distance_miles: Distance from the other creator, when known
    """
    platform: str
    followers: int = 0
    engagement: float = 0.0
    recent_topics: List[str] = field(default_factory=list)
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    username: Optional[str] = None
    display_name: Optional[str] = None
    distance_miles: Optional[float] = None

    @classmethod
    def from_account(cls, account: Any, owner: Any = None, distance_miles: Optional[float] = None) -> "CreatorProfile":
        """Build a profile from a SocialAccount row and its owning User."""
        return cls(
            platform=account.platform,
            followers=account.followers or 0,
            engagement=float(account.engagement_rate or 0.0),
            recent_topics=account.recent_topics,
            name=getattr(owner, "name", None),
            city=getattr(owner, "city", None),
            state=getattr(owner, "state", None),
            username=account.username,
            display_name=account.display_name or account.username,
            distance_miles=distance_miles,
        )

    def topics_text(self, default: str) -> str:
        return ", ".join(self.recent_topics) if self.recent_topics else default


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AudienceAnalysis(_CamelModel):
    """Validated compatibility analysis for one profile pair."""

    compatibility_score: float = Field(ge=0, le=100)
    topic_overlap: str = "medium"
    audience_size_compatibility: str = "similar"
    engagement_compatibility: str = "similar"
    strengths: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    recommendation: str = "possibly_beneficial"
    source: str = "ai"


class CollaborationFormat(_CamelModel):
    """One suggested way for two creators to work together."""

    type: str
    description: str
    effort: str = "medium"
    impact: str = "medium"
    in_person: bool = False


@dataclass
class ParsedResponse:
    """Outcome of parsing LLM output: data when ok, error text otherwise."""
    ok: bool
    data: Any = None
    error: Optional[str] = None


_JSON_PATTERNS = {
    "object": re.compile(r"\{[\s\S]*\}"),
    "array": re.compile(r"\[[\s\S]*\]"),
}


def parse_llm_json(content: Optional[str], expect: str = "object") -> ParsedResponse:
    """
    Extract a JSON object or array from free-form model output.

    Args:
        content: Raw completion text
        expect: "object" or "array"

    Returns:
        ParsedResponse with the decoded value, or ok=False with a reason
    """
    if not content or not content.strip():
        return ParsedResponse(ok=False, error="empty response")

    text = content.strip()

    # Handle markdown code blocks
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1])

    match = _JSON_PATTERNS[expect].search(text)
    if not match:
        return ParsedResponse(ok=False, error=f"no JSON {expect} found")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return ParsedResponse(ok=False, error=f"invalid JSON: {e}")

    expected_type = dict if expect == "object" else list
    if not isinstance(data, expected_type):
        return ParsedResponse(ok=False, error=f"expected JSON {expect}")

    return ParsedResponse(ok=True, data=data)


# ==================== Prompts ====================

COMPATIBILITY_PROMPT = """Analyze the audience compatibility between these two content creators for potential collaboration:

Creator 1:
- Platform: {a.platform}
- Followers: {a.followers:,}
- Engagement: {a.engagement}%
- Topics: {a_topics}

Creator 2:
- Platform: {b.platform}
- Followers: {b.followers:,}
- Engagement: {b.engagement}%
- Topics: {b_topics}

Provide a JSON response with:
{{
  "compatibilityScore": <0-100>,
  "topicOverlap": "<none|low|medium|high>",
  "audienceSizeCompatibility": "<very_different|somewhat_different|similar|very_similar>",
  "engagementCompatibility": "<very_different|somewhat_different|similar|very_similar>",
  "strengths": ["strength1", "strength2", "strength3"],
  "concerns": ["concern1", "concern2"],
  "recommendation": "<highly_recommended|recommended|possibly_beneficial|not_recommended>"
}}

Return ONLY the JSON, no other text."""

FORMATS_PROMPT = """Suggest creative collaboration formats for two content creators who want to work together:

Creator 1:
- Platform: {a.platform}
- Followers: {a.followers:,}
- Topics: {a_topics}

Creator 2:
- Platform: {b.platform}
- Followers: {b.followers:,}
- Topics: {b_topics}

Distance: {distance_text}

Suggest 4-5 specific, actionable collaboration formats. Return as JSON array:
[
  {{
    "type": "Collaboration Name",
    "description": "Brief description of what this involves",
    "effort": "low|medium|high",
    "impact": "low|medium|high",
    "inPerson": true|false
  }}
]

Consider both IRL (in-person) and virtual collaboration options. Return ONLY the JSON array."""

OUTREACH_PROMPT = """You are an expert at creating personalized, genuine collaboration outreach messages for content creators.

Current User Profile:
- Name: {sender_name}
- Location: {sender_location}
- Platform: {target.platform}

Target Creator Profile:
- Name: {target_name}
- Username: @{target_username}
- Platform: {target.platform}
- Followers: {target.followers:,}
- Engagement Rate: {target.engagement}%
- Recent Topics: {target_topics}
- Location: {target_location}

Suggested Collaboration Formats:
{formats_text}

Write a warm, personalized outreach message (150-200 words) that:
1. Shows genuine interest in their content (reference their topics)
2. Highlights geographic proximity as a collaboration opportunity
3. Mentions 1-2 specific collaboration ideas from the suggestions
4. Is conversational and authentic, not salesy
5. Ends with a clear but low-pressure call to action

Keep it friendly and professional. Do NOT use excessive emojis."""


# ==================== Fallbacks ====================

def basic_compatibility(a: CreatorProfile, b: CreatorProfile) -> AudienceAnalysis:
    """
    Heuristic compatibility used when the AI analysis is unavailable.

    Algorithm:
        follower_ratio = min(followers) / max(followers)    → up to 50 points
        engagement     = max(0, 30 − |engagement difference|) → up to 30 points
        platform bonus = 20 same platform, 10 otherwise
    """
    high = max(a.followers, b.followers)
    follower_ratio = min(a.followers, b.followers) / high if high > 0 else 0.0
    engagement_diff = abs(float(a.engagement) - float(b.engagement))

    follower_score = follower_ratio * 50
    engagement_score = max(0.0, 30 - engagement_diff)
    platform_bonus = 20 if a.platform == b.platform else 10

    score = min(100.0, follower_score + engagement_score + platform_bonus)

    concerns = []
    if follower_ratio < 0.3:
        concerns.append("Significant difference in audience size may affect collaboration dynamics")

    return AudienceAnalysis(
        compatibility_score=round(score),
        topic_overlap="medium",
        audience_size_compatibility="similar" if follower_ratio > 0.5 else "somewhat_different",
        engagement_compatibility="similar" if engagement_diff < 2 else "somewhat_different",
        strengths=[
            "Geographic proximity enables in-person collaboration",
            "Similar engagement rates suggest compatible audiences",
            "Complementary content can provide value to both audiences",
        ],
        concerns=concerns,
        recommendation="recommended" if score > 70 else "possibly_beneficial",
        source="fallback",
    )


def default_collaboration_formats(distance_miles: Optional[float]) -> List[CollaborationFormat]:
    """Fixed format list; local pairs get in-person ideas first."""
    is_local = distance_miles is not None and distance_miles < LOCAL_DISTANCE_MILES

    formats = [
        CollaborationFormat(
            type="Joint Content Series",
            description="Create a multi-part series where you each contribute content to a shared theme",
            effort="medium",
            impact="high",
            in_person=False,
        ),
        CollaborationFormat(
            type="Cross-Promotion Campaign",
            description="Feature each other in your content with strategic shoutouts and collaborations",
            effort="low",
            impact="medium",
            in_person=False,
        ),
    ]

    if is_local:
        formats[:0] = [
            CollaborationFormat(
                type="Local Meetup Event",
                description="Host a joint in-person event for your combined audiences",
                effort="high",
                impact="high",
                in_person=True,
            ),
            CollaborationFormat(
                type="Behind-the-Scenes Collab",
                description="Film a day-in-the-life or behind-the-scenes content together",
                effort="medium",
                impact="high",
                in_person=True,
            ),
        ]

    formats.extend([
        CollaborationFormat(
            type="Guest Appearance",
            description=(
                "Appear in each other's content, either in-person or virtually"
                if is_local else "Make virtual guest appearances in each other's content"
            ),
            effort="low",
            impact="medium",
            in_person=is_local,
        ),
        CollaborationFormat(
            type="Challenge or Giveaway",
            description="Run a collaborative challenge or giveaway to engage both audiences",
            effort="medium",
            impact="high",
            in_person=False,
        ),
    ])

    return formats


def template_outreach(
    sender: CreatorProfile,
    target: CreatorProfile,
    formats: List[CollaborationFormat],
) -> str:
    """Deterministic outreach message used when the AI draft is unavailable."""
    top = formats[0] if formats else CollaborationFormat(
        type="Content Collaboration", description="Create content together"
    )
    sender_name = sender.name or "a content creator"
    signature = sender.name or "[Your Name]"
    target_name = target.display_name or target.username or "there"
    topic = target.recent_topics[0] if target.recent_topics else "content creation"
    city = sender.city or "your area"

    return (
        f"Hi {target_name}!\n\n"
        f"I'm {sender_name} based in {city}, and I came across your {target.platform} content. "
        f"I really appreciate your approach to {topic}.\n\n"
        f"I noticed we're both in the same area, and I think there's great potential for us to "
        f"collaborate. With your {target.followers:,} followers and {target.engagement}% engagement "
        f"rate, I believe our audiences would really benefit from working together.\n\n"
        f"I had a few ideas in mind, particularly around {top.type.lower()}: {top.description}\n\n"
        f"Would you be open to grabbing coffee or hopping on a quick call to explore this? "
        f"I think we could create something really valuable for both our communities.\n\n"
        f"Looking forward to hearing from you!\n\n"
        f"Best,\n{signature}"
    )


# ==================== Service ====================

class AIService:
    """
    LLM-backed collaboration helpers with local fallbacks.

    Attributes:
        llm: LLMClient used for completions
    """

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or LLMClient()

    async def analyze_compatibility(self, a: CreatorProfile, b: CreatorProfile) -> AudienceAnalysis:
        """
        Score audience/content fit between two creator profiles (0-100).

        Returns:
            AudienceAnalysis from the model, or the heuristic fallback
            (source="fallback") on any failure
        """
        prompt = COMPATIBILITY_PROMPT.format(
            a=a,
            b=b,
            a_topics=a.topics_text("general content"),
            b_topics=b.topics_text("general content"),
        )

        try:
            content = await self.llm.complete(prompt)
        except LLMUnavailableError as e:
            return self._fallback("analyze_compatibility", e, basic_compatibility(a, b))

        parsed = parse_llm_json(content, expect="object")
        if not parsed.ok:
            return self._fallback("analyze_compatibility", parsed.error, basic_compatibility(a, b))

        try:
            return AudienceAnalysis.model_validate(parsed.data)
        except ValidationError as e:
            return self._fallback("analyze_compatibility", e, basic_compatibility(a, b))

    async def suggest_collaboration_formats(
        self,
        a: CreatorProfile,
        b: CreatorProfile,
        distance_miles: Optional[float],
    ) -> List[CollaborationFormat]:
        """
        Suggest 4-5 collaboration formats for a creator pair.

        Returns:
            Validated formats from the model, or the default list
        """
        prompt = FORMATS_PROMPT.format(
            a=a,
            b=b,
            a_topics=a.topics_text("content creation"),
            b_topics=b.topics_text("content creation"),
            distance_text=f"{distance_miles:.1f} miles apart" if distance_miles else "same area",
        )
        fallback = default_collaboration_formats(distance_miles)

        try:
            content = await self.llm.complete(prompt)
        except LLMUnavailableError as e:
            return self._fallback("suggest_collaboration_formats", e, fallback)

        parsed = parse_llm_json(content, expect="array")
        if not parsed.ok:
            return self._fallback("suggest_collaboration_formats", parsed.error, fallback)

        try:
            formats = [CollaborationFormat.model_validate(item) for item in parsed.data]
        except ValidationError as e:
            return self._fallback("suggest_collaboration_formats", e, fallback)

        if not formats:
            return self._fallback("suggest_collaboration_formats", "empty format list", fallback)
        return formats

    async def generate_outreach_message(
        self,
        sender: CreatorProfile,
        target: CreatorProfile,
        formats: List[CollaborationFormat],
    ) -> str:
        """Draft a personalized outreach message from sender to target."""
        formats_text = "\n".join(
            f"{idx}. {f.type}: {f.description}" for idx, f in enumerate(formats, start=1)
        )
        prompt = OUTREACH_PROMPT.format(
            sender_name=sender.name or "A local creator",
            sender_location=", ".join(p for p in (sender.city, sender.state) if p) or "local area",
            target=target,
            target_name=target.display_name or target.username or "Creator",
            target_username=target.username or "",
            target_topics=target.topics_text("content creation"),
            target_location=(
                f"{target.distance_miles:.1f} miles away" if target.distance_miles else "local area"
            ),
            formats_text=formats_text or "None suggested yet",
        )

        try:
            return (await self.llm.complete(prompt)).strip()
        except LLMUnavailableError as e:
            return self._fallback("generate_outreach_message", e, template_outreach(sender, target, formats))

    def _fallback(self, operation: str, reason: Any, value: Any) -> Any:
        logger.warning(f"AI {operation} fell back to local heuristic: {reason}")
        record_ai_fallback(operation)
        return value


# ==============================================================================
# Singleton Pattern for Dependency Injection
# ==============================================================================

_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Shared AIService instance so the SDK client is reused across requests."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
        logger.info(f"Created AIService (provider: {_ai_service.llm.provider or 'fallback only'})")
    return _ai_service
