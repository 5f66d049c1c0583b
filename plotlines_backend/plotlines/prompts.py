SYSTEM_PROMPT = """You are a special-education instructional designer who writes therapeutic Social Stories for children.
- Descriptive and perspective sentences greatly outnumber directive sentences.
- Short, concrete sentences; nonjudgmental, encouraging tone; no sarcasm or idioms.
- Weave the child's motivating interest into the story to keep it engaging.
- End with an encouraging affirmation."""


STORY_PROMPT_TEMPLATE = """Write a Social Story with exactly 10 steps for a character named "{character_name}", written in the {perspective} person perspective.

Context:
- Motivating interest: "{motivating_interest}"
- Story category: "{category}"
- Specific activity: "{specific_activity}"
- Additional notes: "{additional_notes}"

The story MUST have:
- An introduction paragraph (no heading).
- Exactly 10 steps, each as a single line starting with its number and a period (e.g., "1. ...", "2. ...", ..., "10. ..."). No blank lines between steps.
- A conclusion paragraph (no heading).
Do not add any other headings, lists or commentary."""


IMAGE_TERMS_INSTRUCTIONS = """ALSO choose 1 to 3 short, concrete image search terms that describe what should be visually depicted,
focusing on cartoon, illustration, or vector art style (e.g., "cartoon boy brushing teeth", "vector classroom illustration").
- For the cover image: 1-3 terms describing the overall story theme.
- For EACH step: 1-3 terms that capture the main idea of that step.
All search terms must include one of the words: "cartoon", "illustration", "vector art", or "clipart"."""


STORY_SCHEMA = r"""{
  "story": {
    "intro": "<introduction paragraph>",
    "steps": ["1. ...", "2. ...", "...", "10. ..."],
    "conclusion": "<conclusion paragraph>"
  },
  "images": {
    "coverTerms": ["<term>", "<term?>"],
    "stepTerms": [["<term>", "<term?>"], "... one list per step, 10 lists in total"]
  }
}"""


STRUCTURED_PROMPT_TEMPLATE = """{story_prompt}

{image_terms}

Schema:
{schema}

Return ONLY valid JSON for the schema above (no prose, no Markdown)."""
