"""Prompt templates for trivia question and game title generation."""

import re
from typing import List

from .models import GameContext

COMMON_TLDS: List[str] = [
    ".com", ".org", ".net", ".io", ".co", ".dev", ".app", ".tech", ".ai", ".me",
    ".info", ".biz", ".us", ".uk", ".ca", ".au", ".de", ".fr", ".jp", ".cn",
    ".edu", ".gov", ".mil", ".xyz", ".online", ".site", ".store", ".blog",
    ".club", ".design", ".space", ".world", ".digital", ".cloud", ".tools",
]

WEBSITE_INSTRUCTION = (
    "IMPORTANT: If a website is provided, use your knowledge about that company "
    "from the web to create more accurate and specific questions about their "
    "business, products, services, and history."
)

BATCH_RESPONSE_FORMAT = """{
    "questions": [
      {
        "questionText": "Question here?",
        "options": ["Option A", "Option B", "Option C", "Option D"],
        "correctAnswer": 0,
        "explanation": "Brief explanation of the answer"
      }
    ]
  }"""

SINGLE_RESPONSE_FORMAT = """{
    "questionText": "Clear and concise question?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 0,
    "explanation": "Brief educational explanation citing verifiable facts"
  }"""


def is_website_url(text: str) -> bool:
    """Detect whether a company name is actually a website address."""
    if "." not in text:
        return False
    if text.startswith("http://") or text.startswith("https://"):
        return True

    for tld in COMMON_TLDS:
        index = text.find(tld)
        if index <= 0:
            continue
        after = text[index + len(tld):]
        if after == "" or after[0] in "/?#.":
            return True
    return False


def _company_info(context: GameContext) -> str:
    if is_website_url(context.company_name):
        return f"Company website: {context.company_name}"
    return f"Company name: {context.company_name}"


def category_instruction(category: str, context: GameContext, plural: bool = True) -> str:
    """Instruction sentence for one question category."""
    what = "questions" if plural else "a question"
    is_website = is_website_url(context.company_name)

    if category == "Company Facts":
        instruction = (
            f"Create {what} specifically about {context.company_name} and their "
            "business practices, history, products, or services."
        )
        if is_website:
            instruction += (
                " Use information from the provided website to create accurate "
                "company-specific questions."
            )
        return instruction
    if category == "Industry Knowledge":
        return (
            f"Create {what} about the {context.industry} industry in general, "
            "including trends, terminology, best practices, key players, "
            "innovations, and industry-specific knowledge."
        )
    if category == "Fun Facts":
        trivia = "entertaining trivia questions" if plural else "an entertaining trivia question"
        return (
            f"Create {trivia} with fun or historical facts about the "
            f"{context.industry} industry, interesting stories, lesser-known facts, "
            "or amusing industry-related trivia."
        )
    if category == "General Knowledge":
        general = "general knowledge questions" if plural else "a general knowledge question"
        return (
            f"Create {general} that any visitor might enjoy answering, not "
            "specifically related to the company or industry."
        )
    if category == "Custom Questions":
        description = context.custom_category_description or "custom topics"
        return f"Create {what} about: {description} (related to {context.industry} industry context)"
    return f"Create {what} about: {category} (related to {context.industry} industry context)"


def _category_instructions(context: GameContext, plural: bool) -> str:
    return " ".join(
        category_instruction(category, context, plural) for category in context.categories
    )


def build_batch_prompt(context: GameContext, batch_size: int) -> str:
    """Build the prompt for one batch of questions."""
    website_instruction = WEBSITE_INSTRUCTION if is_website_url(context.company_name) else ""
    return f"""Generate exactly {batch_size} multiple choice trivia questions based on these requirements:

  {_company_info(context)}
  Industry: {context.industry}
  Products or services description: {context.product_description or 'Not provided'}
  Difficulty: {context.difficulty}

  {website_instruction}

  IMPORTANT - Question Category Instructions:
  {_category_instructions(context, plural=True)}

  CRITICAL - ENHANCEMENT REQUIREMENTS:
  - Approximately 15% of questions should include one relevant emoji in the question text
  - Use emojis sparingly and only when they enhance engagement or clarity
  - Never use emojis in answer options or explanations
  - Ensure questions are engaging, educational, and factually accurate
  - Vary the position of correct answers randomly

  Return ONLY a JSON object with a "questions" array containing the questions in this exact format:
  {BATCH_RESPONSE_FORMAT}

  Make sure:
  - Follow the category instructions precisely
  - Each question has exactly 4 options
  - correctAnswer is the index (0-3) of the correct option
  - Include a brief explanation for each answer
  - Return valid JSON only, no additional text"""


def build_single_question_prompt(context: GameContext) -> str:
    """Build the prompt for a single additional question."""
    website_instruction = WEBSITE_INSTRUCTION if is_website_url(context.company_name) else ""
    return f"""Generate exactly ONE multiple choice trivia question based on these requirements:

  {_company_info(context)}
  Industry: {context.industry}
  Products or services description: {context.product_description or 'Not provided'}
  Difficulty: {context.difficulty}

  {website_instruction}

  IMPORTANT - Question Category Instructions:
  {_category_instructions(context, plural=False)}

  CRITICAL - UNIQUENESS REQUIREMENT:
  - Ensure the question is clear and unambiguous
  - This question must be completely unique and not duplicate any existing questions for this game
  - Question should be interesting, educational, and factually accurate

  Return ONLY a JSON object with a single question in this exact format:
  {SINGLE_RESPONSE_FORMAT}

  Make sure:
  - The question has exactly 4 options
  - correctAnswer is the index (0-3) of the correct option
  - Include a brief explanation for the answer
  - Return valid JSON only, no additional text or formatting"""


def build_title_prompt(context: GameContext) -> str:
    """Build the prompt for a short creative game title."""
    return f"""Generate a short, creative game title (max 3-5 words) for a trivia game with these characteristics:
- Company: {context.company_name}
- Industry: {context.industry}
- Products or services description: {context.product_description or 'Not provided'}
- Categories: {', '.join(context.categories)}

Return ONLY the title as plain text, no JSON or additional formatting."""


def clean_title(text: str) -> str:
    """Strip whitespace and one pair of surrounding quotes from a title."""
    return re.sub(r"^[\"']|[\"']$", "", text.strip()).strip()
