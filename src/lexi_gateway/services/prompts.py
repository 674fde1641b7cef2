"""Шаблоны промптов для приложения-словаря."""

CHAT_SYSTEM_PROMPT = (
    "You are a helpful English learning assistant. Answer questions clearly and concisely."
)

_WORD_EXAMPLE = """{
    "definition": "có mặt ở khắp nơi, phổ biến",
    "word_type": "adjective",
    "cefr_level": "C1",
    "ipa_pronunciation": "/juːˈbɪkwɪtəs/",
    "example_sentence": "The company's logo has become ubiquitous all over the world."
}"""

_SENTENCE_FORMAT = """{
  "score": 0-10 (one decimal),
  "overall_feedback": "brief assessment in Vietnamese",
  "errors": [{"text": "incorrect text", "start_index": number, "end_index": number, "type": "grammar|vocabulary|spelling|punctuation|tense|article|preposition", "explanation": "why wrong in Vietnamese", "correction": "correct version", "suggestion": "teaching tip in Vietnamese"}],
  "strengths": ["positive aspects in Vietnamese"],
  "improvements": [{"aspect": "grammar|vocabulary|style", "suggestion": "improvement in Vietnamese"}],
  "grammar_analysis": {"tense": "assessment", "subject_verb_agreement": "assessment", "word_order": "assessment", "articles": "assessment"},
  "vocabulary_analysis": {"level": "A1-C2", "appropriateness": "assessment", "suggestions": ["better words if any"]}
}"""


def build_word_prompt(word: str) -> str:
    return "\n".join(
        [
            f"Analyze the English word '{word}'.",
            "Provide a concise and clear analysis in JSON format. "
            "The JSON object must contain these exact keys:",
            '- "definition": (string, in Vietnamese)',
            '- "word_type": (string, e.g., "noun", "verb", "adjective")',
            '- "cefr_level": (string, one of "A1", "A2", "B1", "B2", "C1", "C2")',
            '- "ipa_pronunciation": (string)',
            '- "example_sentence": (string, a clear English example)',
            "",
            "Example for the word 'ubiquitous':",
            _WORD_EXAMPLE,
            "",
            f"Generate the JSON for the word '{word}':",
        ]
    )


def build_sentence_prompt(sentence: str) -> str:
    return "\n".join(
        [
            "Analyze this English sentence and return JSON only:",
            "",
            f'"{sentence}"',
            "",
            "JSON format:",
            _SENTENCE_FORMAT,
            "",
            "Rules:",
            "- If perfect, score=10",
            "- Indices must be accurate",
            "- Vietnamese for explanations",
            "- JSON only, no extra text",
        ]
    )
