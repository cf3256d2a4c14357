"""Per-format prompt templates for content repurposing.

Each template names a role, lists the rules for the target format (length,
tone, structure), injects the voice and the original content, and closes
with an explicit instruction. Rendering is pure string substitution.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List


class Format(str, Enum):
    """Supported output formats."""
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"
    EMAIL = "email"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    FACEBOOK = "facebook"
    PINTEREST = "pinterest"
    BLOG_SUMMARY = "blog_summary"
    REDDIT = "reddit"


@dataclass(frozen=True)
class FormatInfo:
    """Catalogue entry shown to clients."""
    key: str
    label: str
    description: str


FORMAT_INFO: Dict[Format, FormatInfo] = {
    Format.TWITTER: FormatInfo("twitter", "Twitter/X Thread", "Thread format, 280 char limit per tweet"),
    Format.LINKEDIN: FormatInfo("linkedin", "LinkedIn Post", "Professional networking post"),
    Format.INSTAGRAM: FormatInfo("instagram", "Instagram Caption", "Engaging caption with hashtags"),
    Format.EMAIL: FormatInfo("email", "Email Newsletter", "Full newsletter with subject line"),
    Format.YOUTUBE: FormatInfo("youtube", "YouTube Video Script", "Script with hooks and timestamps"),
    Format.TIKTOK: FormatInfo("tiktok", "TikTok/Reels Script", "Short-form video script"),
    Format.FACEBOOK: FormatInfo("facebook", "Facebook Post", "Casual social media post"),
    Format.PINTEREST: FormatInfo("pinterest", "Pinterest Description", "SEO-optimized pin description"),
    Format.BLOG_SUMMARY: FormatInfo("blog_summary", "Blog Summary (TL;DR)", "Concise content summary"),
    Format.REDDIT: FormatInfo("reddit", "Reddit Post", "Authentic community post"),
}

DEFAULT_VOICE = "professional"
VOICES = ["professional", "casual", "friendly", "authoritative", "witty"]

# Unknown keys render with this template
FALLBACK_FORMAT = Format.TWITTER

FREE_TIER_FORMATS = [
    Format.TWITTER,
    Format.LINKEDIN,
    Format.INSTAGRAM,
    Format.EMAIL,
    Format.BLOG_SUMMARY,
]
RESTRICT_FREE_TIER_FORMATS = False


# Placeholders: {voice}, {voice_lower}, {content}
PROMPT_TEMPLATES: Dict[Format, str] = {
    Format.TWITTER: """You are a social media expert. Convert this content into a Twitter/X thread.

Rules:
- Create 5-10 tweets
- Each tweet MUST be under 280 characters
- Number each tweet (1/, 2/, 3/, etc.)
- First tweet must hook the reader
- Use line breaks for readability
- End with a call-to-action
- Tone: {voice}

Original content:
{content}

Generate the Twitter thread now:""",

    Format.LINKEDIN: """You are a LinkedIn content strategist. Convert this into a LinkedIn post.

Rules:
- 1,300-2,000 characters total
- Professional tone, but {voice_lower}
- Start with a hook (question or bold statement)
- Use short paragraphs (2-3 lines max)
- Include 3-5 relevant hashtags at the end
- End with an engagement question

Original content:
{content}

Generate the LinkedIn post now:""",

    Format.INSTAGRAM: """You are an Instagram content creator. Convert this into an Instagram caption.

Rules:
- Casual, engaging tone ({voice_lower})
- First sentence must grab attention
- Use emojis naturally (not excessive)
- Include 10-15 relevant hashtags
- Max 2,200 characters
- Include a call-to-action (tag a friend, save, share)

Original content:
{content}

Generate the Instagram caption now:""",

    Format.EMAIL: """You are an email marketing expert. Convert this into an email newsletter.

Rules:
- Compelling subject line
- Friendly greeting
- Short intro paragraph
- 3-5 main sections with clear headers
- Conclusion paragraph
- Clear call-to-action
- Professional sign-off
- Tone: {voice}

Original content:
{content}

Generate the email newsletter now (include subject line):""",

    Format.YOUTUBE: """You are a YouTube script writer. Convert this into a YouTube video script.

Rules:
- Hook in first 10 seconds
- Clear intro, body, conclusion structure
- Include timestamps suggestions
- Conversational tone ({voice_lower})
- Add presenter notes in [brackets]
- End with strong CTA (like, subscribe, comment)
- 5-10 minute video length

Original content:
{content}

Generate the YouTube script now:""",

    Format.TIKTOK: """You are a TikTok content creator. Convert this into a TikTok/Reels script.

Rules:
- 15-60 seconds duration
- STRONG hook in first 3 seconds
- Fast-paced, energetic
- Include visual cues in [brackets]
- Use trending language/phrases
- Clear call-to-action at end
- Tone: {voice} but energetic

Original content:
{content}

Generate the TikTok script now:""",

    Format.FACEBOOK: """You are a Facebook content strategist. Convert this into a Facebook post.

Rules:
- Conversational, friendly tone ({voice_lower})
- 400-800 characters ideal
- Ask a question to drive engagement
- Use casual language
- Include relevant emojis
- End with clear CTA

Original content:
{content}

Generate the Facebook post now:""",

    Format.PINTEREST: """You are a Pinterest SEO expert. Convert this into a Pinterest pin description.

Rules:
- Keyword-rich (SEO optimized)
- 100-500 characters
- Include relevant keywords naturally
- Clear benefit statement
- Call-to-action
- Use 2-3 relevant hashtags
- Tone: {voice}

Original content:
{content}

Generate the Pinterest description now:""",

    Format.BLOG_SUMMARY: """You are a content editor. Create a TL;DR summary of this content.

Rules:
- 3-5 sentences max
- Capture main points
- Clear, concise language
- No fluff
- Tone: {voice}

Original content:
{content}

Generate the summary now:""",

    Format.REDDIT: """You are a Reddit power user. Convert this into a Reddit post.

Rules:
- Authentic, genuine tone
- No corporate speak
- Add value to the community
- Use proper Reddit formatting (markdown)
- Conversational ({voice_lower})
- Include TL;DR at end if post is long

Original content:
{content}

Generate the Reddit post now:""",
}


def resolve_format(format_key: str) -> Format:
    """Map a key to a Format, falling back to the default template."""
    try:
        return Format(format_key)
    except ValueError:
        return FALLBACK_FORMAT


def is_known_format(format_key: str) -> bool:
    return format_key in Format._value2member_map_


def render_prompt(format_key: str, content: str, voice: str = DEFAULT_VOICE) -> str:
    """Render the prompt for one format. Deterministic, no I/O."""
    template = PROMPT_TEMPLATES[resolve_format(format_key)]
    return template.format(voice=voice, voice_lower=voice.lower(), content=content)


def list_formats() -> List[FormatInfo]:
    return [FORMAT_INFO[f] for f in Format]


def restricted_formats(tier: str, selected: Iterable[str]) -> List[str]:
    """Formats in `selected` that the tier may not use.

    Only the free tier is restricted, and only when RESTRICT_FREE_TIER_FORMATS
    is on.
    """
    if not RESTRICT_FREE_TIER_FORMATS or tier != "free":
        return []
    allowed = {f.value for f in FREE_TIER_FORMATS}
    return [key for key in selected if key not in allowed]
