import re
from typing import Optional

# =============================================================================
# RELEVANCE RULES
# =============================================================================
#
# Grounded search regularly returns a real, quotable address that is simply
# the wrong inbox: the press office, HR, the visitor bureau. These tables
# encode which inboxes are never appropriate, and which are wrong for a given
# topic. Each entry is an independent domain fact; add rows, don't add ifs.
#
# Matching is on lower-cased "agency name + email" text. A keyword matches
# only at a word start, so "press" does not fire on "expressway" and
# "permit" still fires on "permitting".
# =============================================================================

# Inbox families that never handle issue reports, whatever the topic
DISQUALIFYING_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hr_eeo": (
        "human resources", "hr@", "hr ", "hr-", "personnel", "eeo",
        "equal employment", "equal opportunity", "recruit", "careers", "jobs@",
    ),
    "media": (
        "media", "press", "communications", "public information officer",
        "pio@", "newsroom",
    ),
    "tourism": ("tourism", "visitor", "visit@", "convention"),
    "permitting": ("permit", "licens"),
}

# Address keyword -> topics that address must NOT receive
TOPIC_EXCLUSIONS: dict[str, frozenset[str]] = {
    "graffiti": frozenset({
        "pothole", "streetlight", "sidewalk", "trash", "noise",
        "flooding", "sewer", "water",
    }),
    "environment": frozenset({"pothole", "streetlight", "sidewalk", "graffiti"}),
    "sustainability": frozenset({"pothole", "streetlight", "sidewalk", "graffiti"}),
    "animal": frozenset({
        "pothole", "streetlight", "sidewalk", "graffiti", "flooding", "sewer",
    }),
    "library": frozenset({
        "pothole", "streetlight", "sidewalk", "graffiti", "trash", "noise",
        "flooding", "sewer", "water",
    }),
}


def _contains(text: str, keyword: str) -> bool:
    return re.search(r"(?<![a-z0-9])" + re.escape(keyword), text) is not None


def _topic_matches(topic: str, term: str) -> bool:
    # "street light" and "streetlight" are the same topic
    return term in topic or term in topic.replace(" ", "")


def rejection_reason(topic: str, agency_name: str, email: str) -> Optional[str]:
    """
    Explain why an agency/email pair is wrong for the topic.

    Returns:
        None when relevant, otherwise the rule that rejected it
    """
    agency_name = (agency_name or "").strip()
    email = (email or "").strip()
    if not agency_name and not email:
        return "no agency name or email"

    text = f"{agency_name} {email}".lower()
    for group, keywords in DISQUALIFYING_KEYWORDS.items():
        for keyword in keywords:
            if _contains(text, keyword):
                return f"disqualified inbox ({group}: '{keyword.strip()}')"

    normalized_topic = (topic or "").strip().lower()
    for keyword, excluded_topics in TOPIC_EXCLUSIONS.items():
        if not _contains(text, keyword):
            continue
        for excluded in excluded_topics:
            if _topic_matches(normalized_topic, excluded):
                return f"'{keyword}' inbox does not handle '{excluded}'"
    return None


def is_relevant(topic: str, agency_name: str, email: str) -> bool:
    """Pure rule check: can this agency/email plausibly handle the topic?"""
    return rejection_reason(topic, agency_name, email) is None
