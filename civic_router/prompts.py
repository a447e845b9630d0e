# civic_router/prompts.py
"""
Prompt templates for every Model Gateway call site.

Prompt design:
- Every prompt ends with an exact JSON shape; the matching decoder lives in
  civic_router.schemas, so the two must change together
- Search tiers demand a verbatim quote containing the email. The pipeline
  rejects any candidate whose email is not inside its own quote, so asking
  for the quote up front saves a wasted tier
- Resident text is sanitized before interpolation
"""
from civic_router.models import Jurisdiction

# Contacts confirmed for the default jurisdiction. Offered as search hints
# only; a tier still has to find and quote them.
KNOWN_DIRECTORY: dict[str, dict[str, str]] = {
    "palo alto, ca": {
        "Public Works": "PWE-Work-Request@cityofpaloalto.org",
        "Utilities": "utilities@cityofpaloalto.org",
        "Police": "pd@cityofpaloalto.org",
        "Code Enforcement": "codecompliance@cityofpaloalto.org",
        "Parks": "parks.division@cityofpaloalto.org",
        "General": "city.hall@cityofpaloalto.org",
    },
}


def sanitize_for_prompt(text: str, max_len: int = 4000) -> str:
    """Neutralize fence/role markers in resident-supplied text."""
    if not text:
        return ""
    sanitized = text.replace("```", "'''")
    sanitized = sanitized.replace('"""', "'''")
    sanitized = sanitized.replace("SYSTEM:", "[SYSTEM]")
    sanitized = sanitized.replace("INSTRUCTION:", "[INSTRUCTION]")
    if len(sanitized) > max_len:
        sanitized = sanitized[:max_len] + "... [truncated]"
    return sanitized


def directory_hint(jurisdiction: Jurisdiction) -> str:
    directory = KNOWN_DIRECTORY.get(jurisdiction.label.lower())
    if not directory:
        return ""
    lines = "\n".join(f"   - {dept}: {email}" for dept, email in directory.items())
    return (
        "Previously confirmed contacts for this city (still confirm with search and quote the page):\n"
        f"{lines}\n"
    )


GEOCODE_PROMPT = """Determine the US city and state for these GPS coordinates:
latitude {latitude}, longitude {longitude}

If you cannot determine them, use "Unknown".

You MUST respond in EXACTLY this JSON format and nothing else:
{{"city":"city name or Unknown","state":"two-letter state abbreviation or Unknown"}}"""


LOCATION_EXTRACTION_PROMPT = """Analyze this civic issue report and determine the location:
"{description}"

If any location is mentioned or implied (street name, neighborhood, landmark, city, state, etc.), extract it.
If NO location is mentioned at all, respond with "Unknown" for location.

You MUST respond in EXACTLY this JSON format and nothing else:
{{"location":"extracted location or Unknown","city":"city name or Unknown","state":"state abbreviation or Unknown","hasExplicitLocation":true or false}}"""


TOPIC_EXTRACTION_PROMPT = """Classify this civic issue report into ONE short lowercase topic (1-3 words),
for example: pothole, streetlight, sidewalk, graffiti, trash, illegal dumping, noise,
flooding, sewer, water leak, abandoned vehicle, tree, park, parking, animal.

Report:
"{description}"

You MUST respond in EXACTLY this JSON format and nothing else:
{{"topic":"short topic"}}"""


SEARCH_RESPONSE_FORMAT = """RULES:
- Use web search. Only report an email address you found on a real web page.
- "quotedSnippet" MUST be copied verbatim from that page and MUST contain the email address exactly.
- If you cannot find such an address, set "found" to false.
- Never report HR, press/media, tourism, or permit/licensing inboxes.

You MUST respond in EXACTLY this JSON format and nothing else:
{{"found":true or false,"email":"address or empty","agencyName":"department name","confidence":0.0-1.0,"evidence":{{"sourceTitle":"page title","sourceUrl":"https://...","quotedSnippet":"verbatim text containing the email"}},"websiteUrl":"official website for reporting, or null"}}"""


TOPIC_SPECIFIC_PROMPT = """You are a civic issue routing assistant for the United States.

A resident of {jurisdiction} reports a "{topic}" issue:
"{description}"

Search for the email address of the office in {jurisdiction} that specifically handles "{topic}" reports
(for example a dedicated {topic} reporting inbox or the program that owns it).
{directory}
""" + SEARCH_RESPONSE_FORMAT


AGENCY_MAIN_PROMPT = """You are a civic issue routing assistant for the United States.

A resident of {jurisdiction} reports a "{topic}" issue:
"{description}"

Search for the main public email address of the {department} department of {jurisdiction}.
{directory}
""" + SEARCH_RESPONSE_FORMAT


JURISDICTION_GENERAL_PROMPT = """You are a civic issue routing assistant for the United States.

A resident of {jurisdiction} needs to report a "{topic}" issue.

Search for any general citizen-services email address for {jurisdiction}: a 311 / service request inbox,
the city manager's office, the city clerk, or the general public works contact.
""" + SEARCH_RESPONSE_FORMAT


GUESS_PROMPT = """You are a civic issue routing assistant for the United States.

A resident of {jurisdiction} reports a "{topic}" issue:
"{description}"

Give your best guess for the government email address that should receive this report.
Prefer .gov or well-known city domains, and a general contact (info@, contact@, 311@) if unsure.

You MUST respond in EXACTLY this JSON format and nothing else:
{{"email":"best guess address","agencyName":"department name","websiteUrl":"official website or null"}}"""


DRAFT_PROMPT = """You are helping a resident of {jurisdiction} report a local issue to {agency_name}.

Resident's description:
"{description}"
{photo_context}
Write a professional, concise email on behalf of the resident reporting this issue.
Include the location details the resident gave. Do not invent facts.

You MUST respond in EXACTLY this JSON format and nothing else - no markdown, no backticks, no explanation:
{{"subject":"Brief subject line","body":"The full email body text"}}"""


PHOTO_CONTEXT = "The resident has attached a photo of the issue; mention that it is attached.\n"


REVISION_PROMPT = """You are a civic issue routing assistant. A resident has already drafted an email to report a local issue, but wants changes.

Current email:
To: {current_to}
Subject: {current_subject}
Body:
{current_body}

The resident's requested change:
"{suggestion}"

Apply the requested change to the email. If the change implies a different department or location,
use web search to find that department's real public email address and update "to" accordingly.
Otherwise keep "to" unchanged.

You MUST respond in EXACTLY this JSON format and nothing else - no markdown, no backticks, no explanation:
{{"to":"email@example.gov","subject":"Brief subject line","body":"The full email body text"}}"""
