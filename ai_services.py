"""
AI Services Module
Sentiment classification, narrative and art-prompt generation through OpenAI,
with keyword and template fallbacks whenever the API is unavailable.
"""

import os
import re
import logging
from collections import Counter
from typing import List, Dict, Any, Optional, Tuple

from openai import OpenAI

from life_timeline import Sentiment

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-4"
DEFAULT_IMAGE_MODEL = "dall-e-3"

SENTIMENT_SYSTEM_PROMPT = 'You are a sentiment analyzer. Respond with exactly one word: "positive", "negative", or "neutral".'
NARRATIVE_SYSTEM_PROMPT = (
    "You are a narrative generator that creates meaningful connections between personal events "
    "and historical events. Keep the narrative concise (2-3 sentences) and engaging."
)
ART_PROMPT_SYSTEM_PROMPT = (
    "You are an art prompt generator. Create a detailed prompt for generating abstract art "
    "that represents the themes and emotions of the given events."
)

# Keyword lists for the offline sentiment classifier
POSITIVE_KEYWORDS = {
    "happy", "excited", "exciting", "joy", "joyful", "proud", "amazing", "wonderful", "great",
    "love", "loved", "success", "successful", "successfully", "achievement", "achieved",
    "promotion", "promoted", "celebrate", "celebrated", "grateful", "thankful", "beautiful",
    "incredible", "perfect", "fun", "honors", "passed", "won", "win", "rewarding", "relaxation",
    "glad", "delighted", "fantastic", "best", "better", "growth", "opportunities", "memories",
}
NEGATIVE_KEYWORDS = {
    "sad", "angry", "failed", "fail", "failure", "lost", "loss", "scary", "scared", "fear",
    "anxiety", "anxious", "stress", "stressed", "difficult", "hard", "terrible", "awful",
    "frustrating", "frustrated", "ruined", "cancelled", "canceled", "breakup", "died", "death",
    "sick", "illness", "pain", "hurt", "worried", "worst", "broke", "fired", "divorce",
    "emergency", "lonely", "disappointed", "disappointing", "regret",
}
NEGATION_WORDS = {"not", "no", "never", "didn't", "don't", "wasn't", "isn't", "couldn't", "won't"}

REFLECTION_TEMPLATES = [
    "This moment in your life - {event} - represents a significant step in your personal journey. Every experience shapes who you become.",
    "Looking back at {event}, this event marks an important chapter in your story. Personal growth often comes from both planned milestones and unexpected moments.",
    "{event} stands as a meaningful point in your timeline. These personal experiences create the unique narrative of your life.",
    "The significance of {event} in your life story cannot be understated. These are the moments that define your personal evolution and growth.",
    "{event} represents more than just an event - it's a building block in the architecture of your life experience.",
]

NARRATIVE_FALLBACK_TEMPLATE = (
    "While the world was witnessing {historical}, your own story was unfolding: {personal}. "
    "Personal milestones take on new meaning when set against the wider history around them."
)

SENTIMENT_PALETTES = {
    "positive": "warm golds, sunrise oranges and vibrant greens",
    "negative": "deep indigos, stormy greys and muted violets",
    "neutral": "soft pastels and balanced earth tones",
}
CATEGORY_MOTIFS = {
    "Career": "ascending geometric structures",
    "Education": "branching lines like open books and neural paths",
    "Personal": "interwoven organic curves",
    "Travel": "sweeping horizons and winding routes",
}


def get_openai_client() -> Optional[OpenAI]:
    """OpenAI client when OPENAI_API_KEY is set, otherwise None"""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None
    return OpenAI(api_key=api_key)


class KeywordSentimentAnalyzer:
    """Counts positive and negative keyword tokens; negated tokens flip polarity"""

    def score(self, text: str) -> Dict[str, int]:
        tokens = re.findall(r"[a-z']+", text.lower())
        counts = {"positive": 0, "negative": 0}

        for i, token in enumerate(tokens):
            if token in POSITIVE_KEYWORDS:
                polarity = "positive"
            elif token in NEGATIVE_KEYWORDS:
                polarity = "negative"
            else:
                continue
            if i > 0 and tokens[i - 1] in NEGATION_WORDS:
                polarity = "negative" if polarity == "positive" else "positive"
            counts[polarity] += 1

        return counts

    def analyze(self, text: str) -> str:
        counts = self.score(text)
        if counts["positive"] > counts["negative"]:
            return Sentiment.POSITIVE.value
        if counts["negative"] > counts["positive"]:
            return Sentiment.NEGATIVE.value
        return Sentiment.NEUTRAL.value


class AIServices:
    """Thin wrapper around the chat and image APIs with deterministic fallbacks"""

    def __init__(self, client: Optional[OpenAI] = None, model: str = None, image_model: str = None):
        self.client = client
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_CHAT_MODEL)
        self.image_model = image_model or os.getenv("OPENAI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL)
        self.keyword_analyzer = KeywordSentimentAnalyzer()

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _chat(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()

    def analyze_sentiment(self, text: str) -> Tuple[str, str]:
        """Return (sentiment, method) where method is 'ai' or 'keyword'"""
        if not self.configured:
            return self.keyword_analyzer.analyze(text), "keyword"

        try:
            reply = self._chat(
                SENTIMENT_SYSTEM_PROMPT,
                f"Analyze the sentiment of this text: {text}",
                max_tokens=10,
                temperature=0.3,
            )
        except Exception as e:
            logger.warning(f"Sentiment analysis via OpenAI failed, using keyword fallback: {e}")
            return self.keyword_analyzer.analyze(text), "keyword"

        sentiment = reply.lower().strip().strip(".!\"'")
        if sentiment in {s.value for s in Sentiment}:
            return sentiment, "ai"

        logger.info(f"Unrecognised sentiment reply '{reply}', defaulting to neutral")
        return Sentiment.NEUTRAL.value, "ai"

    def generate_narrative(self, personal_event: str, historical_event: str) -> str:
        fallback = NARRATIVE_FALLBACK_TEMPLATE.format(
            historical=historical_event.strip().rstrip("."),
            personal=personal_event.strip().rstrip("."),
        )
        if not self.configured:
            return fallback

        try:
            narrative = self._chat(
                NARRATIVE_SYSTEM_PROMPT,
                f"Generate a narrative connecting these events:\nPersonal Event: {personal_event}\nHistorical Event: {historical_event}",
                max_tokens=150,
                temperature=0.7,
            )
        except Exception as e:
            logger.warning(f"Narrative generation failed, using template: {e}")
            return fallback

        return narrative or fallback

    def generate_personal_reflection(self, personal_event: str) -> str:
        event = personal_event.strip()
        template = REFLECTION_TEMPLATES[sum(map(ord, event)) % len(REFLECTION_TEMPLATES)]
        return template.format(event=event)

    def fallback_art_prompt(self, events: List[Dict[str, Any]], chapter_name: str = None) -> str:
        sentiments = Counter(event.get("sentiment", "neutral") for event in events)
        dominant_sentiment = sentiments.most_common(1)[0][0] if sentiments else "neutral"
        palette = SENTIMENT_PALETTES.get(dominant_sentiment, SENTIMENT_PALETTES["neutral"])

        categories = Counter(event.get("category") for event in events if event.get("category"))
        motifs = [CATEGORY_MOTIFS[c] for c, _ in categories.most_common() if c in CATEGORY_MOTIFS]
        motif_text = ", ".join(motifs) if motifs else "flowing organic shapes"

        titles = [event.get("title") for event in events if event.get("title")][:5]
        subject = f" for the life chapter '{chapter_name}'" if chapter_name else ""

        prompt = f"Abstract artwork{subject}, composed of {motif_text}, rendered in {palette}"
        if titles:
            prompt += f", symbolizing moments such as {'; '.join(titles)}"
        return prompt + "."

    def generate_art_prompt(self, events: List[Dict[str, Any]], chapter_name: str = None) -> str:
        if not self.configured:
            return self.fallback_art_prompt(events, chapter_name)

        lines = [f"{event.get('title', '')}: {event.get('description', '')}" for event in events]
        if chapter_name:
            lines.insert(0, f"Life chapter: {chapter_name}")

        try:
            prompt = self._chat(
                ART_PROMPT_SYSTEM_PROMPT,
                "Generate an art prompt based on these events:\n" + "\n".join(lines),
                max_tokens=200,
                temperature=0.8,
            )
        except Exception as e:
            logger.warning(f"Art prompt generation failed, using fallback prompt: {e}")
            return self.fallback_art_prompt(events, chapter_name)

        return prompt or self.fallback_art_prompt(events, chapter_name)

    def generate_art_image(self, prompt: str) -> Optional[str]:
        """Image URL for a prompt, or None when images cannot be generated"""
        if not self.configured:
            return None

        try:
            response = self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=1,
                size="1024x1024",
            )
            return response.data[0].url if response.data else None
        except Exception as e:
            logger.warning(f"Image generation failed: {e}")
            return None
