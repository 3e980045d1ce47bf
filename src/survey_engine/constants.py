"""Survey engine constants shared across the SDK.

These values are referenced by the catalog loader, the navigation resolver,
the template renderer, and the engine.  They mirror conventions encoded in
the configuration documents under ``surveys/``.

The session TTL can be overridden via an environment variable so that
deployments can adjust retention without code changes.
"""

import os

# Sessions expire after this many seconds (24 hours by default).
# Overridable via SURVEY_SESSION_TTL_SECONDS.
SESSION_TTL_SECONDS = int(os.getenv("SURVEY_SESSION_TTL_SECONDS", str(3600 * 24)))

# Suffix of the client-facing id of an empty-answer acknowledgement block.
EMPTY_MESSAGE_SUFFIX = "-empty-message"

# Answer submitted on behalf of the respondent when the engine walks through
# a routing-only dynamic-message block.
ACKNOWLEDGED_ANSWER = "acknowledged"

# Variable a keyed dynamic-message selects on when the block sets no contentKey.
DEFAULT_CONTENT_KEY = "connection_type"

# Fallback text for a keyed dynamic-message with neither a match nor a default.
DEFAULT_DYNAMIC_MESSAGE = "Thanks for sharing!"

# conditionalContent entries tagged with this value always match.
DEFAULT_CONTENT_CONDITION = "default"

# conditionalContent only replaces block content equal to one of these.
CONTENT_PLACEHOLDERS: frozenset[str] = frozenset({"placeholder", ""})

# Upper bound on condition / conditionalNext nesting in a document.
MAX_CONDITION_DEPTH = 32

# Upper bound on blocks traversed (skipped or auto-advanced) in one answer.
MAX_NAVIGATION_HOPS = 100

# Semantic-differential ratings fall in this range unless the block overrides it.
DEFAULT_RATING_RANGE: tuple[int, int] = (1, 5)
