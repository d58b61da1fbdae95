"""Fixed strings and endpoints shared across CatGPT."""

# ── Endpoints ─────────────────────────────────────────────

SLACK_API_BASE = "https://slack.com/api"
OPENAI_API_BASE = "https://api.openai.com/v1"

# ── Streaming protocol ────────────────────────────────────

STREAM_DATA_PREFIX = "data: "
STREAM_DONE_MARKER = "[DONE]"
INVALID_IMAGE_FORMAT_MARKER = "invalid_image_format"

# ── Slack event vocabulary ────────────────────────────────

MESSAGE_TYPE = "message"
FILE_SHARE_SUBTYPE = "file_share"
DIRECT_MESSAGE_CHANNEL_TYPE = "im"
MENTION_MARKER = "<@"

# Image types the completion endpoint accepts as image_url parts
VALID_MIME_TYPES = (
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
)

# ── User-facing messages ──────────────────────────────────

LOADING_MESSAGE = ":hourglass_flowing_sand:"
ERROR_MESSAGE = "Something went wrong, meow. Sorry about that!"
EMPTY_RESPONSE_MESSAGE = (
    "The model returned an empty answer, meow. It may be having a bad day. Sorry!"
)
USAGE_LIMIT_MESSAGE = "We hit the OpenAI usage limit, meow. Please try again later."
INVALID_IMAGE_FORMAT_MESSAGE = (
    "I can only look at PNG, JPEG, GIF or WebP images, meow."
)
NO_CONTEXT_MESSAGE = "I couldn't find anything addressed to me here, meow."
TRANSPORT_ERROR_MESSAGE = "The connection to OpenAI dropped mid-answer, meow. Please ask again."
FETCH_FAILURE_MESSAGE = "I couldn't read the conversation from Slack, meow. Please try again."

# ── System prompt ─────────────────────────────────────────

SYSTEM_PROMPT = (
    "You are a friendly Cat AI assistant. "
    "Please output your response message according to following format. "
    '- bold/heading: "*bold*" '
    '- italic: "_italic_" '
    '- strikethrough: "~strikethrough~" '
    '- code: "`code`" '
    '- link: "<https://slack.com|link text>" '
    '- block: "``` code block" '
    '- bulleted list: "* *title*: content" '
    '- numbered list: "1. *title*: content" '
    '- quoted sentence: ">sentence" '
    "Be sure to include a space before and after the single quote in the sentence. "
    "ex) word`code`word -> word `code` word "
    "And answer in the language the user uses. "
    'If you use English, the ending of your sentences is "meow". '
    "If your answer is specifically about programming, please provide URL sources. "
    "Let's begin."
)
