"""
Prompt templates for outline and chapter generation.

All providers share the same system instruction and prompt text; only the
transport differs.
"""

from typing import Any, Dict

from .models import ChapterOutline, GenerationOptions


SYSTEM_INSTRUCTION = """You are "School of Standard Publishing Engine", a professional publishing intelligence system powered by the School of Standard.
Your task is to generate a fully structured, commercially viable, original eBook manuscript based on user-provided inputs.
Requirements:
1. Generate complete, well-developed chapters.
2. Use clear, professional English.
3. Maintain logical flow and structural consistency.
4. Ensure content depth suitable for both beginners and professionals.
5. Avoid generic filler or repetition.
6. Include actionable steps, frameworks, and examples.
7. Use proper hierarchical formatting (Title, H1, H2, H3).
8. Make content suitable for PDF export and commercial publishing.
9. Ensure originality and avoid plagiarism.
10. NEVER mention that you are an AI, an algorithm, or a machine. Write strictly as a human expert author or professional publisher.
11. STRICTLY FORBIDDEN: Do NOT use the asterisk character (*) anywhere in the text. Use hyphens (-) for bullet points. Use underscores (_) for bold or italic formatting if needed."""


OUTLINE_PROMPT = """Create a detailed eBook outline based on the following parameters:
- Topic: {topic}
- Target Audience: {audience}
- English Style: {english_style}
- Approx Page Count: {length}
- Target Chapters: {chapter_count}
- Tone: {tone}
- Objective: {objective}
- Book Description: {description}
- Included Extras: {extras}

The outline should include:
1. A catchy Title and Subtitle.
2. A compelling "Book Description" (approx 150 words) suitable for an online store listing.
3. "Back Cover Copy" (approx 200 words) that sells the book, including a strong hook and key benefits/takeaways.
4. A list of {chapter_count} chapters with brief descriptions for each.
The chapter descriptions should highlight the key takeaways and structure of that chapter.

Return a JSON object with the following structure:
{{
  "title": "String",
  "subtitle": "String",
  "description": "String",
  "backCoverCopy": "String",
  "chapters": [
    {{ "title": "String", "description": "String" }}
  ]
}}"""


CHAPTER_PROMPT = """Write the full content for Chapter {number}: "{chapter_title}".

Book Context:
- Title: {book_title}
- Subtitle: {book_subtitle}
- Audience: {audience}
- English Style: {english_style}
- Tone: {tone}
- Author: {author_name}
- Objective: {objective}
- Book Description: {description}
- Position: chapter {number} of {total}

Chapter Description:
{chapter_description}

Requirements:
- Write in Markdown format.
- Start with a Level 1 Heading (# {chapter_title}).
- Use H2 (##) and H3 (###) for subheadings.
- The content should be detailed, roughly 800-1500 words depending on the topic depth required.
- Include practical examples, actionable steps, or frameworks where relevant.
- End with a brief "Chapter Summary" or "Key Takeaways" section.
- Ensure the voice matches the requested "{tone}" tone.
- Do NOT include the book title or other chapters, ONLY the content for this specific chapter.
- IMPORTANT: Do NOT use asterisks (*) for formatting. Use hyphens (-) for lists and underscores (_) for emphasis."""


# Gemini responseSchema for structured outline output
OUTLINE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "The main title of the book"},
        "subtitle": {"type": "STRING", "description": "A compelling subtitle"},
        "description": {"type": "STRING", "description": "Marketing description for the book listing"},
        "backCoverCopy": {"type": "STRING", "description": "Persuasive copy for the back cover of the book"},
        "chapters": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING", "description": "Chapter title"},
                    "description": {"type": "STRING", "description": "Brief summary of what the chapter covers"},
                },
                "required": ["title", "description"],
            },
        },
    },
    "required": ["title", "subtitle", "description", "backCoverCopy", "chapters"],
}


def build_outline_prompt(options: GenerationOptions) -> str:
    return OUTLINE_PROMPT.format(
        topic=options.topic,
        audience=options.audience,
        english_style=options.english_style,
        length=options.length,
        chapter_count=options.chapter_count,
        tone=options.tone,
        objective=options.objective or "Not provided",
        description=options.description or "Not provided",
        extras=", ".join(options.extras) or "None",
    )


def build_chapter_prompt(
    options: GenerationOptions,
    book_info: Dict[str, str],
    chapter: ChapterOutline,
    index: int,
    total: int,
) -> str:
    """Prompt for one chapter. ``index`` is zero-based."""
    return CHAPTER_PROMPT.format(
        number=index + 1,
        total=total,
        chapter_title=chapter.title,
        chapter_description=chapter.description,
        book_title=book_info.get("title", ""),
        book_subtitle=book_info.get("subtitle", ""),
        audience=options.audience,
        english_style=options.english_style,
        tone=options.tone,
        author_name=options.author_name,
        objective=options.objective or "Not provided",
        description=options.description or "Not provided",
    )
