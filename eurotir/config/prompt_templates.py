"""
Eurotir Assist - Prompt Templates & Contact Routing
===================================================
Centralised prompt management for the support assistant.  All prompts
live here so they can be versioned, reviewed, and A/B-tested
independently of the retrieval engine.

Exports
-------
SYSTEM_PROMPT, USER_PROMPT_TEMPLATE, NO_CONTEXT_MARKER,
NO_CONTEXT_RESPONSE, GENERATION_FALLBACK, DEPARTMENT_CONTACTS,
DEFAULT_CONTACT, contact_for().
"""

# ══════════════════════════════════════════════════════════════════════
#  CONTACT ROUTING — keyed by department label from DEPARTMENT_RULES
# ══════════════════════════════════════════════════════════════════════

DEFAULT_CONTACT: str = "our customer service team at info@eurotir.co.uk or +44 (0)1902 000 000"

DEPARTMENT_CONTACTS: dict[str, str] = {
    "sales": "our sales desk at sales@eurotir.co.uk or +44 (0)1902 000 010",
    "customs": "our customs team at customs@eurotir.co.uk",
    "operations": "our operations office at ops@eurotir.co.uk or +44 (0)1902 000 020",
    "accounts": "our accounts department at accounts@eurotir.co.uk",
    "warehousing": "our warehouse team at warehouse@eurotir.co.uk",
    "careers": "our recruitment team at careers@eurotir.co.uk",
}


def contact_for(department: str | None) -> str:
    """Return the contact line for *department*, or the general one."""
    if department is None:
        return DEFAULT_CONTACT
    return DEPARTMENT_CONTACTS.get(department, DEFAULT_CONTACT)


# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = """You are a concise, factual customer support agent for Jeavons Eurotir Ltd, an international road haulage and logistics company.

Rules:
1. Use only the provided context where possible.
2. If information is missing, say you don't have that information and offer next steps (contact support).
3. Never invent dates, prices, transit times or facts.
4. When the question asks for a process, answer as numbered steps.
5. Keep the answer short: at most 3-4 paragraphs."""


# ══════════════════════════════════════════════════════════════════════
#  USER PROMPT TEMPLATE
# ══════════════════════════════════════════════════════════════════════

NO_CONTEXT_MARKER: str = "[no context found]"

USER_PROMPT_TEMPLATE: str = """Context:
{context}

User question: {question}

If the user needs further help, direct them to {contact}.

Answer the question based on the context. Keep the answer concise and helpful."""


# ══════════════════════════════════════════════════════════════════════
#  FALLBACKS
# ══════════════════════════════════════════════════════════════════════

NO_CONTEXT_RESPONSE: str = "I'm sorry, I don't have information about that in our knowledge base. Please contact {contact} and they will be happy to help."

GENERATION_FALLBACK: str = "Sorry, I couldn't generate a response."
