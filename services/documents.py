"""
Document summarization and analysis through the LLM gateway
"""
import math
from typing import Dict, Any, List, Optional
from core.logger import setup_logger
from services.llm import LLMGateway, LLMError, extract_json_object

logger = setup_logger(__name__)

WORDS_PER_MINUTE = 200
SUMMARY_INPUT_CHARS = 4000
ANALYSIS_INPUT_CHARS = 3000

class DocumentError(Exception):
    """Document processing failed"""

def _string_list(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, list) and value:
        return [str(item) for item in value]
    return default

class DocumentProcessor:
    def __init__(self, llm: LLMGateway):
        self.llm = llm

    async def _ask(self, prompt: str) -> str:
        try:
            return await self.llm.complete([{"role": "user", "content": prompt}])
        except LLMError as e:
            raise DocumentError(str(e)) from e

    async def summarize_text(self, text: str, max_length: int = 200) -> Dict[str, Any]:
        """
        Summarize text with the model

        Returns:
            Dict with title, summary, keyPoints, wordCount,
            readingTime (minutes) and topics

        Raises:
            ValueError: empty text
            DocumentError: the model call failed
        """
        if not text or not text.strip():
            raise ValueError("No text provided for summarization")

        prompt = (
            "Please analyze and summarize the following text. Provide your response in JSON format "
            "with these fields:\n"
            "- title: A descriptive title for the content\n"
            f"- summary: A concise summary in {max_length} words or less\n"
            "- keyPoints: An array of 3-5 key points\n"
            "- topics: An array of main topics/themes\n\n"
            f"Text to analyze: \"{text[:SUMMARY_INPUT_CHARS]}\""
        )
        content = await self._ask(prompt)
        analysis = extract_json_object(content)
        if analysis is None:
            logger.warning("Summary response was not JSON, using raw text")
            analysis = {}

        word_count = len(text.split())
        return {
            "title": analysis.get("title") or "Document Summary",
            "summary": analysis.get("summary") or content[:max_length],
            "keyPoints": _string_list(analysis.get("keyPoints"), ["Document analysis completed"]),
            "wordCount": word_count,
            "readingTime": math.ceil(word_count / WORDS_PER_MINUTE),
            "topics": _string_list(analysis.get("topics"), ["General"]),
        }

    async def analyze_document(self, text: str) -> Dict[str, Any]:
        """Sentiment, entities, keywords and categories for a text"""
        if not text or not text.strip():
            raise ValueError("No text provided for analysis")

        prompt = (
            "Analyze the following text and provide a JSON response with:\n"
            "- sentiment: \"positive\", \"negative\", or \"neutral\"\n"
            "- confidence: confidence score between 0 and 1\n"
            "- entities: array of important entities/names mentioned\n"
            "- keywords: array of key terms\n"
            "- categories: array of document categories/types\n\n"
            f"Text: \"{text[:ANALYSIS_INPUT_CHARS]}\""
        )
        content = await self._ask(prompt)
        analysis: Optional[Dict[str, Any]] = extract_json_object(content)
        if analysis is None:
            logger.warning("Analysis response was not JSON, using neutral defaults")
            analysis = {}

        sentiment = analysis.get("sentiment")
        if sentiment not in ("positive", "negative", "neutral"):
            sentiment = "neutral"
        try:
            confidence = float(analysis.get("confidence", 0.7))
        except (TypeError, ValueError):
            confidence = 0.7

        return {
            "sentiment": sentiment,
            "confidence": max(0.0, min(1.0, confidence)),
            "entities": _string_list(analysis.get("entities"), []),
            "keywords": _string_list(analysis.get("keywords"), ["document", "analysis"]),
            "categories": _string_list(analysis.get("categories"), ["general"]),
        }
