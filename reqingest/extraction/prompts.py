"""Requirement extraction prompts."""

from ..schema.items import Category, Priority

CATEGORIES = [c.value for c in Category]
PRIORITIES = [p.value for p in Priority]

SYSTEM_PROMPT = (
    "You are a business analyst expert in software migration projects. "
    "You extract clear, implementable requirements from source material "
    "and answer with JSON only."
)

# --- Per-chunk prompt ---
CHUNK_PROMPT_TEMPLATE = """Analyze the provided content and extract clear, detailed requirements for implementing the described functionality in a target system.

Project: {project_name}
Content Type: {content_type}
File: {file_name} (section {position} of {total})

## Content to analyze
{text}

## Task
Extract as many requirements as necessary to comprehensively cover the content provided. Do not limit yourself to a specific number. Aim for at least {target_items} requirements if the content supports it, but extract more if necessary.

This is one section of a larger document. Only extract requirements supported by this section.

Each requirement must include:
- title: A short, descriptive title summarizing the requirement
- description: A detailed description giving context and explaining what needs to be implemented
- category: One of: {categories}
- priority: One of: {priorities} (based on your assessment of business importance)

## Output: Return ONLY a valid JSON array, no markdown fences.
[
  {{
    "title": "User Authentication System",
    "description": "The system must provide secure user authentication using email/password and support multi-factor authentication options.",
    "category": "security",
    "priority": "high"
  }},
  {{
    "title": "Customer Data Migration",
    "description": "All existing customer data must be migrated from the legacy system with full history preservation.",
    "category": "data",
    "priority": "high"
  }}
]"""


def build_chunk_prompt(
    text: str,
    project_name: str,
    file_name: str,
    content_type: str,
    position: int,
    total: int,
    target_items: int,
) -> str:
    return CHUNK_PROMPT_TEMPLATE.format(
        text=text,
        project_name=project_name,
        file_name=file_name,
        content_type=content_type,
        position=position,
        total=total,
        target_items=target_items,
        categories=", ".join(CATEGORIES),
        priorities=", ".join(PRIORITIES),
    )
