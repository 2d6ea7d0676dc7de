"""Prompt templates for two-stage source evaluation.

Both prompts ask for a bare JSON object with camelCase keys; the
evaluation service validates the reply against its pydantic models.
"""

_TOPIC_DOMAINS = """- "team_selection"
- "dispute_resolution"
- "safesport"
- "anti_doping"
- "eligibility"
- "governance"
- "athlete_rights"
- "athlete_safety"
- "financial_assistance\""""

METADATA_EVALUATION_PROMPT = f"""You are a document evaluator for an athlete support knowledge base. \
Decide quickly whether a discovered URL is likely to contain governance, compliance, or team \
selection information for U.S. Olympic and Paralympic athletes.

Look at the URL, title and domain below and answer with a JSON object containing:

isRelevant (boolean)
    True if the URL likely holds governance, compliance, policy or procedural information for
    athletes or national governing bodies: selection procedures, eligibility rules, grievance and
    dispute policies, SafeSport and anti-doping policies, athlete rights documents, bylaws,
    handbooks and codes of conduct, financial support programs, Paralympic classification rules,
    leadership and committee rosters, compliance contact pages.
    False for news, press releases, blog posts, athlete profiles, results, schedules, marketing,
    merchandise, social media and galleries.

confidence (number, 0 to 1)
    0.9-1.0 the URL clearly names a policy or governance document
    0.7-0.89 strong signals in URL or title
    0.5-0.69 some signals, ambiguous
    0.3-0.49 more signals of irrelevance than relevance
    0-0.29 clearly irrelevant

reasoning (string)
    One or two sentences citing signals from the URL path, title or domain.

suggestedTopicDomains (array of strings, may be empty), chosen from:
{_TOPIC_DOMAINS}

preliminaryDocumentType (string)
    Short label such as "Bylaws", "Selection Procedures", "Policy", "Handbook",
    "Grievance Policy", "Code of Conduct".

Return ONLY the JSON object, no markdown and no commentary. Example:
{{{{"isRelevant": true, "confidence": 0.85, "reasoning": "Path contains 'team-selection-procedures'.", \
"suggestedTopicDomains": ["team_selection"], "preliminaryDocumentType": "Selection Procedures"}}}}

URL: {{url}}
Title: {{title}}
Domain: {{domain}}
{{context_hint}}"""

CONTENT_EVALUATION_PROMPT = f"""You are a document evaluator for an athlete support knowledge base. \
Analyze the content excerpt of a discovered document and extract the metadata needed to \
catalog it.

Answer with a JSON object containing:

isHighQuality (boolean)
    True for substantial, authoritative, current governance or compliance material with clear
    procedures or policy language (including financial support programs, classification
    procedures, leadership rosters and compliance contacts). False for outdated, superseded,
    placeholder, duplicate or promotional content.

confidence (number, 0 to 1)
    How confident you are in this evaluation.

documentType (string)
    Specific label, e.g. "Bylaws", "Selection Procedures", "Athlete Handbook",
    "SafeSport Policy", "Anti-Doping Rules", "Eligibility Requirements", "Grant Program".

topicDomains (array of strings), chosen from:
{_TOPIC_DOMAINS}

authorityLevel (string), one of:
- "law" (federal or state legislation)
- "international_rule" (IOC, IPC, international federation rules)
- "usopc_governance" (USOPC bylaws and governance frameworks)
- "usopc_policy_procedure" (USOPC policies and procedures)
- "independent_office" (SafeSport, Athlete Ombuds)
- "anti_doping_national" (USADA rules)
- "ngb_policy_procedure" (NGB-specific policies, procedures and governance)
- "games_event_specific" (Games-specific rules)
- "educational_guidance" (FAQs, guides, educational material)

priority (string), one of "high", "medium", "low".

description (string)
    One or two sentences on what the document covers and who it applies to.

keyTopics (array of 3-5 strings)

ngbId (string or null)
    Organization identifier such as "usa-swimming" when the document is specific to one
    governing body; null when it applies broadly.

Return ONLY the JSON object, no markdown and no commentary.

URL: {{url}}
Title: {{title}}
{{context_hint}}
Content excerpt:

{{content}}"""


def build_metadata_prompt(url: str, title: str, domain: str, context_hint: str = "") -> str:
    return METADATA_EVALUATION_PROMPT.format(
        url=url,
        title=title,
        domain=domain,
        context_hint=f"\n{context_hint}" if context_hint else "",
    )


def build_content_prompt(url: str, title: str, content: str, context_hint: str = "") -> str:
    return CONTENT_EVALUATION_PROMPT.format(
        url=url,
        title=title,
        content=content,
        context_hint=f"{context_hint}\n" if context_hint else "",
    )
