"""
Prompt templates for the HTS compliance service.

Contains:
- Fallback HTS extraction prompt (used when the regex parser finds nothing)
- Unknown-code explanation prompt
- Country-of-origin restriction prompt
- Document question answering prompt
"""

# ============================================================================
# Extraction Prompts
# ============================================================================

HTS_EXTRACTION_PROMPT = """Extract all HTS/HS codes with their descriptions and {direction} policies from the following text.
Format the output as a JSON array of objects with fields:
"hsCode", "description", and "policy".

Return ONLY the JSON array. If the text contains no codes, return [].

Text:
{text}"""


# ============================================================================
# Compliance Decision Prompts
# ============================================================================

UNKNOWN_CODE_PROMPT = """Given HTS code {code} that wasn't found in our {jurisdiction} {direction} regulations database, \
provide a reason why this code might not be recognized or why the item might have {direction} restrictions. \
Limit your response to one short paragraph."""

COUNTRY_RESTRICTION_PROMPT = """For HTS code {code} ({description}), are there any specific {direction} restrictions \
or tariffs when importing from {country} to the {jurisdiction}? Respond with a brief explanation."""


# ============================================================================
# Question Answering Prompts
# ============================================================================

DOCUMENT_QA_PROMPT = """You are a trade compliance assistant for the {jurisdiction} tariff schedule.
Use ONLY the following excerpts from the schedule to answer the question.
If the excerpts do not contain the answer, say that you don't know.
Keep the answer concise and mention HTS codes exactly as written.

Excerpts:
{context}

Question: {question}"""
