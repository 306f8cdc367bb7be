"""
Prompt templates for the oracle.

Every template asks for JSON only; responses still go through
parse_json_response because small models do not always comply.
"""

import re
from typing import Optional

SUBMISSION_LINK = re.compile(r"submit|query|manuscript|querymanager|submittable", re.IGNORECASE)
MAX_SUBMISSION_LINKS = 10


EXTRACT_PROMPT = """You are a data extraction assistant. Extract ALL literary agent information from this webpage. Be thorough - capture every detail.

Title: {title}
Content: {text}
{submission_links}{known_section}
RULES:
- Extract ONLY what is EXPLICITLY stated in the text
- Use "Unknown" if not found, null for unknown booleans, [] for arrays, "" for strings
- genres_raw: list ALL genres/categories the agent represents, fiction AND nonfiction, exactly as written
- hard_nos_raw: everything they explicitly do NOT want (e.g. "no sci-fi", "NOT looking for rhyming books")
- audience_raw: all age groups/audiences mentioned (e.g. "Adult", "Middle Grade", "Young Adult")
- manuscript_wishlist_summary: the FULL wishlist with all specific interests, themes and preferences
- contact_email: the address queries should be sent to
- specific_keywords: specific themes, tropes, interests (e.g. "queer representation", "voice-driven")

Output ONLY this JSON:

{{
  "agent_name": "full name",
  "agent_name_evidence": "exact quote",
  "agency_name": "agency name",
  "agency_name_evidence": "exact quote",
  "agent_role": "role/title (e.g. Literary Agent, Associate Agent)",
  "contact_email": "email address for submissions",
  "website": "agent or agency website URL",
  "submission_url": "URL for submissions",
  "is_open_to_submissions": true/false/null,
  "is_open_to_submissions_evidence": "exact quote",
  "status_notice": "submission status notice",
  "estimated_response_time": "response time",
  "genres_raw": "ALL genres, exactly as listed on the page, separated by commas",
  "hard_nos_raw": "everything they do NOT want, exactly as written",
  "audience_raw": "all age groups/audiences mentioned, separated by commas",
  "manuscript_wishlist_summary": "comprehensive summary of what they are looking for",
  "specific_keywords": ["keyword1", "keyword2"],
  "requires_bio": true/false,
  "requires_expose": true/false,
  "requires_manuscript": true/false
}}

START with {{ and END with }}. No explanations."""


HARD_NOS_PROMPT = """Classify these REJECTED/EXCLUDED genres into our standard categories.

Agent does NOT want (raw text): "{raw}"

Available categories:
{categories}

Rules:
- Match each rejected item to the CLOSEST category. Include ALL that apply.
- Map terms: "rhyming books" -> Poetry, "Sci-Fi" -> Science Fiction
- Only use exact category names from the list above

Output ONLY this JSON:
{{"hard_nos": ["Category1", "Category2"]}}"""


AUDIENCE_PROMPT = """Identify the target age groups/audiences for this literary agent.

Raw audience info: "{raw}"

Available audience categories:
{categories}

Rules:
- Map terms: "Children's" or "Kidlit" -> Other Children's, "MG" -> Middle Grade, "YA" -> Young Adult, "PB" -> Picture Book, "NA" -> New Adult
- If adult books are mentioned (literary fiction, thriller, romance for adults) -> Adult
- If only children's categories are mentioned, do NOT add Adult
- Only use exact category names from the list above

Output ONLY this JSON:
{{"audience": ["Category1", "Category2"]}}"""


TRIAGE_PROMPT = """You are analyzing pages from {base_url} to find literary agent profile pages.

Pages to analyze:
{pages}

Which pages contain individual literary agent information (agent name, genres they represent, submission guidelines, contact info)?

Output ONLY a JSON object with the indices of relevant pages:
{{"relevant": [0, 3, 7]}}

Rules:
- Only include pages that clearly contain agent/person profile information
- Skip general pages (about us, blog, news, legal, events)
- Skip directory pages without detailed agent info
- START with {{ and END with }}"""


RANK_PROMPT = """You are analyzing URLs from a literary agency website: {base_url}

Rank these URLs by likelihood of containing literary agent information (agent names, contact info, genres they represent, submission guidelines).

URLs to analyze:
{urls}

Output ONLY a JSON array with this format:
[
  {{"url": "exact_url_from_list", "score": 5}},
  {{"url": "exact_url_from_list", "score": 4}}
]

Scoring: 5=agent pages, 4=likely agent, 3=maybe, 2=unlikely, 1=irrelevant

CRITICAL: Output ONLY the JSON array. START with [ and END with ]"""


def build_extract_prompt(title: str, text: str, links: list[str],
                         known_fields: Optional[dict] = None, max_chars: int = 50000) -> str:
    submission = [link for link in links if SUBMISSION_LINK.search(link)][:MAX_SUBMISSION_LINKS]
    submission_links = ""
    if submission:
        submission_links = "\nSubmission-related URLs found:\n" + "\n".join(submission) + "\n"

    known_section = ""
    if known_fields:
        lines = [f'  - {key}: "{value}"' for key, value in known_fields.items()]
        known_section = (
            "\nALREADY KNOWN (use these, do NOT re-extract):\n"
            + "\n".join(lines)
            + "\nFocus on extracting ONLY the MISSING fields.\n"
        )

    return EXTRACT_PROMPT.format(
        title=title or "",
        text=(text or "")[:max_chars],
        submission_links=submission_links,
        known_section=known_section,
    )


def build_hard_nos_prompt(raw: str, categories: list[str]) -> str:
    return HARD_NOS_PROMPT.format(raw=raw, categories=", ".join(categories))


def build_audience_prompt(raw: str, categories: list[str]) -> str:
    return AUDIENCE_PROMPT.format(raw=raw, categories=", ".join(categories))


def build_triage_prompt(base_url: str, previews: list[tuple[str, str, str]]) -> str:
    pages = "\n\n".join(
        f"[{i}] URL: {url}\n    Title: {title}\n    Preview: {preview}"
        for i, (url, title, preview) in enumerate(previews)
    )
    return TRIAGE_PROMPT.format(base_url=base_url, pages=pages)


def build_rank_prompt(base_url: str, urls: list[str]) -> str:
    listing = "\n".join(f"{i}. {url}" for i, url in enumerate(urls, 1))
    return RANK_PROMPT.format(base_url=base_url, urls=listing)
