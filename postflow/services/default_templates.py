"""Default prompt templates seeded for every organization (one per template key)."""
from postflow.models.schemas import PostFormat, TemplateKey, Tone

_FORMAT_NAMES = {
    PostFormat.ONE_SHORT: "Short Post",
    PostFormat.ONE_LONG: "Long Post",
    PostFormat.THREAD_SHORT: "Short Thread",
    PostFormat.THREAD_LONG: "Long Thread",
}

_TONE_NAMES = {
    Tone.PERSONAL: "Personal Tone",
    Tone.COMPANY: "Company Tone",
}

_TONE_RULES = {
    Tone.PERSONAL: "- Use a personal tone (first person)",
    Tone.COMPANY: "- Use a company tone (third person, brand voice)",
}

_HOOK_SUBJECTS = {
    PostFormat.ONE_SHORT: "{tone} posts",
    PostFormat.ONE_LONG: "long {tone} posts",
    PostFormat.THREAD_SHORT: "{tone} threads made of short posts",
    PostFormat.THREAD_LONG: "{tone} threads made of long posts",
}

_LENGTH_RULES = {
    PostFormat.ONE_SHORT: (
        "- The post must have at most 200 characters so it fits on Twitter\n"
        "- The post must have exactly 1 item"
    ),
    PostFormat.ONE_LONG: (
        "- The post must be long and detailed\n"
        "- The post must have exactly 1 item"
    ),
    PostFormat.THREAD_SHORT: (
        "- Each post must have at most 200 characters so it fits on Twitter\n"
        "- The thread must have at least 2 items"
    ),
    PostFormat.THREAD_LONG: (
        "- Each post must be long and detailed\n"
        "- The thread must have at least 2 items"
    ),
}

RESEARCH_PROMPT = """Today is {{currentDate}}. You are an assistant that receives requests for social media posts.
Your research must be based on the most recent data available.
Combine the text of the request with an internet search based on that text.

User request:
{{request}}"""

HOOK_PROMPT = """You are an assistant that writes hooks for %(subject)s.
The hook is the first 1-2 sentences of the post and is used to grab the reader's attention.
You will receive existing hooks as inspiration.

Instructions:
- Avoid odd hooks that start with "Discover the secret...", "The best...", "The most...", "The top..."
%(tone_rule)s
- Be engaging, but not over the top
- Use simple English
- Add "\\n" between lines
- Do NOT take the hook from the "user request"

<!-- BEGIN user request -->
{{request}}
<!-- END user request -->

<!-- BEGIN existing hooks -->
{{popularHooks}}
<!-- END existing hooks -->

<!-- BEGIN current content -->
{{research}}
<!-- END current content -->"""

CONTENT_PROMPT = """You are an assistant that receives an existing social media hook and writes only the content.

Instructions:
- Do NOT add hashtags
%(tone_rule)s
%(length_rules)s
- Use the hook as inspiration
- Be engaging, but not over the top
- Use simple English
- The content must NOT contain the hook
- Try to end with a call-to-action%(cta_suffix)s
- Add "\\n" between lines
- Add "\\n" after every "."

Hook:
{{hook}}

User request:
{{request}}

Current content information:
{{research}}"""

IMAGE_PROMPT = """Write a description used to generate an image for this post.
Make sure it contains no brand names and is very descriptive in terms of style.

Instructions:
- Be visually descriptive
- Include the art style (photography, illustration, etc.)
- Describe colors, lighting and composition
- Do NOT include brand names or specific people
- Focus on visual elements that complement the content

Post content:
{{content}}

Request context:
{{request}}"""


def _build(key: TemplateKey) -> dict[str, str]:
    post_format, tone = key.format, key.tone
    tone_rule = _TONE_RULES[tone]
    return {
        "template_key": key.value,
        "name": f"{_FORMAT_NAMES[post_format]} - {_TONE_NAMES[tone]}",
        "research_prompt": RESEARCH_PROMPT,
        "hook_prompt": HOOK_PROMPT % {
            "subject": _HOOK_SUBJECTS[post_format].format(tone=tone.value),
            "tone_rule": tone_rule,
        },
        "content_prompt": CONTENT_PROMPT % {
            "tone_rule": tone_rule,
            "length_rules": _LENGTH_RULES[post_format],
            "cta_suffix": " of the last post" if post_format.is_thread else "",
        },
        "image_prompt": IMAGE_PROMPT,
    }


DEFAULT_TEMPLATES: dict[str, dict[str, str]] = {key.value: _build(key) for key in TemplateKey}
