"""
Eurotir Assist - Query Rule Tables
==================================
Ordered regex tables consumed by ``QueryAnalyzer``.

Order is significant: rules are evaluated top to bottom and the FIRST
match wins.  There is no weighting between rules, so the more specific
pattern must always sit above the broader one (e.g. ``customs`` above
``services``, because "customs services" is a customs question).

Exports
-------
INTENT_RULES, DEPARTMENT_RULES, PROCEDURAL_QUERY_PATTERNS,
PROCEDURAL_ANSWER_PATTERN, PROCESS_CATEGORY_PATTERN.
"""

import re

# ══════════════════════════════════════════════════════════════════════
#  INTENT RULES — (label, pattern), most specific first
# ══════════════════════════════════════════════════════════════════════

INTENT_RULES: list[tuple[str, str]] = [
    ("tracking", r"\b(track(ing)?|where is my|consignment status|delivery status|proof of delivery|pod)\b"),
    ("customs", r"\b(customs|clearance|brexit|import(s|ing)?|export(s|ing)?|tariff|duty|duties|eori|t1|cmr)\b"),
    ("pricing", r"\b(price|pricing|quote|quotation|cost|costs|rate|rates|how much|charge|charges|fee|fees)\b"),
    ("booking", r"\b(book|booking|schedule|collection|collect|pick ?up|reserve)\b"),
    ("claims", r"\b(damage[ds]?|claim|claims|lost|missing|insurance|compensation)\b"),
    ("careers", r"\b(job|jobs|career|careers|vacanc(y|ies)|hiring|recruit(ment)?|driver wanted|apply)\b"),
    ("contact", r"\b(contact|phone|email|e-mail|call|address|opening hours|reach you)\b"),
    ("services", r"\b(service|services|groupage|full load|ftl|ltl|part load|warehous(e|ing)|storage|haulage|freight)\b"),
    ("coverage", r"\b(countr(y|ies)|europe|european|route|routes|destination|deliver to|ship to)\b"),
    ("about_company", r"\b(who are you|about (you|the company)|history|founded|company|eurotir|jeavons)\b"),
]

# ══════════════════════════════════════════════════════════════════════
#  DEPARTMENT RULES (sales first)
# ══════════════════════════════════════════════════════════════════════
# Ambiguous business enquiries ("can you move 10 pallets to Lyon?") must
# land on the sales desk before any department-specific rule sees them.

DEPARTMENT_RULES: list[tuple[str, str]] = [
    ("sales", r"\b(quote|quotation|price|pricing|rate|rates|new customer|account opening|business enquiry|partnership|tender|can you (move|ship|deliver|transport))\b"),
    ("customs", r"\b(customs|clearance|brexit|eori|tariff|duty|duties|t1|declaration)\b"),
    ("operations", r"\b(track(ing)?|collection|delivery|driver|trailer|consignment|pod|proof of delivery|delay(ed)?)\b"),
    ("accounts", r"\b(invoice|invoices|payment|pay|billing|credit|refund|statement)\b"),
    ("warehousing", r"\b(warehous(e|ing)|storage|pallet storage|stock|pick and pack|fulfil(l)?ment)\b"),
    ("careers", r"\b(job|jobs|career|careers|vacanc(y|ies)|hiring|recruit(ment)?|cv|apply)\b"),
]

# ══════════════════════════════════════════════════════════════════════
#  PROCEDURAL LANGUAGE
# ══════════════════════════════════════════════════════════════════════

PROCEDURAL_QUERY_PATTERNS: list[str] = [
    r"\bhow (do|can|should) (i|we|you)\b",
    r"\bhow to\b",
    r"\bsteps?\b",
    r"\bprocedures?\b",
    r"\bguide\b",
    r"\binstructions?\b",
    r"\bset ?up\b",
    r"\barrang(e|ing)\b",
    r"\borgani[sz](e|ing)\b",
    r"^\s*(first|next|then|finally)\b.*\?\s*$",
]

# Markers that make an *answer* read like a sequence of steps.
PROCEDURAL_ANSWER_PATTERN: str = r"\b(step\s*\d+|steps?|first(ly)?|second(ly)?|next|then|finally|afterwards|once (you|this|that))\b"

PROCESS_CATEGORY_PATTERN: str = r"process|procedure"

# Compiled once at import
PROCEDURAL_ANSWER_RE = re.compile(PROCEDURAL_ANSWER_PATTERN, re.IGNORECASE)
PROCESS_CATEGORY_RE = re.compile(PROCESS_CATEGORY_PATTERN, re.IGNORECASE)
