"""
OpenAI-backed Collaborators

Implements the NLP enrichment, live guidance, recommendation and custom
insight contracts with chat completions.

NLP enrichment asks the model for a JSON object (key phrases, entities,
PII redaction, sentence sentiment) and formats it into the panel text the
advisor UI shows. Enrichment never raises: any failure returns the
NoKP/NoEnt sentinel.
"""

import os
import json
import re
import time
import logging
from typing import Optional, Dict, Any, List

from openai import AsyncOpenAI
from dotenv import load_dotenv

from conversation_copilot.conversation_state import (
    ConfidenceScores,
    SentenceSentiment,
    SentimentScore,
)
from conversation_copilot.providers import (
    EnrichmentResult,
    SentimentAnalysis,
    unavailable_enrichment,
)
from conversation_copilot.recommendation_outcomes import PROVIDER_ERROR_MARKER, WAITING_SENTINEL

load_dotenv()

logger = logging.getLogger(__name__)

# Entities below this confidence are left out of the entity panel
ENTITY_CONFIDENCE_THRESHOLD = 0.7


ENRICHMENT_PROMPT = """Analyze this single utterance from a conversation between a financial advisor and a client.

Utterance:
{utterance}

Respond in JSON format:
{{
    "key_phrases": ["short key phrases"],
    "entities": [{{"category": "Person|Organization|DateTime|Quantity|Location|Product|...", "text": "...", "confidence": 0.0-1.0}}],
    "pii_redacted_text": "the utterance with any personal data replaced by asterisks",
    "sentiment": "positive|negative|neutral|mixed",
    "confidence": {{"positive": 0.0-1.0, "negative": 0.0-1.0, "neutral": 0.0-1.0}},
    "sentences": [
        {{"text": "...", "sentiment": "positive|negative|neutral|mixed",
          "confidence": {{"positive": 0.0-1.0, "negative": 0.0-1.0, "neutral": 0.0-1.0}}}}
    ]
}}"""


GUIDANCE_SYSTEM_PROMPT = """ROLE: You are an AI assistant that goes through a list of questions provided to you and checks which of the questions are answered or not answered in the provided transcript of conversation between an advisor and a client.
TASK: You should go through the entire conversation transcript, analyze the given list of questions, imply what you need to from the transcript, and decide if those questions have been answered or addressed. Please provide output in two sections: in the first section list the questions that are already answered. In the second section list the questions that are not answered or addressed.
QUESTIONS:
{template}
USER FORMAT:
<TRANSCRIPT>
...
<GO>
ASSISTANT FORMAT:
Addressed Questions
<Question Number>. <Question> - <Answer>
Unaddressed Questions
<Question Number>. <Question>
CONSTRAINT: if the answer can be inferred from the transcript, consider the question addressed
CONSTRAINT: if the client says anything in relation to the question, consider the question addressed
CONSTRAINT: answers should use as few words as possible and no longer than 1 sentence."""


RECOMMENDATION_SYSTEM_PROMPT = f"""Act as a senior investment advisor who specializes in the firm's product and service portfolio.

You are analyzing the COMPLETE conversation transcript between an advisor and a potential client. Analyze ALL the information provided throughout the conversation to recommend suitable products and services that could enhance the client's financial wellbeing and meet their specific investment needs.

Consider the FULL conversation context including:
- All client statements about financial goals and objectives
- Risk tolerance and investment timeline
- Employment and income information
- Family or estate planning considerations
- Investment experience or preferences
- Current financial situation

Product focus areas:
- Portfolio Management Services (diversified global portfolios)
- Retirement Planning & IRA Management
- Tax-Efficient Investment Strategies
- Estate Planning Integration
- Risk Management & Asset Allocation
- Wealth Transfer Planning
- Private Client Services

IMPORTANT CONSTRAINTS:
- If the transcript does not contain sufficient information about the client's financial situation, investment goals, risk tolerance, or time horizon, respond ONLY with: "{WAITING_SENTINEL}"
- Only generate recommendations when you have adequate information about: employment/income status, investment objectives, time horizon, risk tolerance, current financial situation
- Provide realistic, client-appropriate recommendations

If sufficient information is available, provide 4 concise bullet points recommending specific services with brief explanations of why each would benefit this particular client."""


CUSTOM_PROMPT_SYSTEM = (
    "You are a helpful analytics assistant. Follow the user's custom instructions carefully "
    "and extract or analyze the content from the provided transcript."
)


class OpenAICopilotProvider:
    """
    Chat-completion implementation of every collaborator contract.

    One instance can serve many sessions; it holds no conversation state.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        """
        Args:
            client: AsyncOpenAI client (created from OPENAI_API_KEY when omitted)
            model: Chat model name (OPENAI_MODEL or gpt-4o-mini when omitted)
        """
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        if client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    async def _complete(self, messages: List[Dict[str, str]], **params) -> str:
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            **params
        )
        return completion.choices[0].message.content or ""

    # ==================== NLP enrichment ====================

    async def enrich(self, utterance_text: str) -> EnrichmentResult:
        """Enrich one utterance; returns the sentinel result on any failure."""
        if not utterance_text or not utterance_text.strip():
            return unavailable_enrichment()

        start_time = time.time()
        try:
            content = await self._complete(
                [
                    {"role": "system", "content": "You are an NLP text analytics service. Return only valid JSON."},
                    {"role": "user", "content": ENRICHMENT_PROMPT.format(utterance=utterance_text.strip())},
                ],
                response_format={"type": "json_object"},
                temperature=0,
                max_tokens=600
            )
            data = self._load_json(content)
            # Well-formed JSON in the wrong shape fails here too
            result = self.build_enrichment(utterance_text.strip(), data)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(f"❌ [NLPEnrichment] Failed after {elapsed:.2f}s: {e}")
            return unavailable_enrichment()

        logger.debug(f"✅ [NLPEnrichment] Completed in {time.time() - start_time:.2f}s")
        return result

    @staticmethod
    def _load_json(content: str) -> Dict[str, Any]:
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            # Some models wrap JSON in prose or code fences
            json_match = re.search(r"\{.*\}", content, re.DOTALL)
            if not json_match:
                raise
            return json.loads(json_match.group())

    @staticmethod
    def _confidence(raw: Optional[Dict[str, Any]]) -> ConfidenceScores:
        raw = raw or {}
        return ConfidenceScores(
            positive=float(raw.get("positive", 0.0)),
            negative=float(raw.get("negative", 0.0)),
            neutral=float(raw.get("neutral", 0.0)),
        )

    @classmethod
    def build_enrichment(cls, utterance_text: str, data: Dict[str, Any]) -> EnrichmentResult:
        """Format the model's JSON into panel text and sentiment dataclasses."""
        key_phrases = data.get("key_phrases") or []
        key_phrases_text = "Key Phrases: " + ",".join(str(p) for p in key_phrases)

        entity_text = ""
        for entity in data.get("entities") or []:
            if float(entity.get("confidence", 0.0)) > ENTITY_CONFIDENCE_THRESHOLD:
                entity_text += f"\n{entity.get('category', 'Other')}: {entity.get('text', '')}"

        pii_text = "PII:"
        redacted = data.get("pii_redacted_text") or ""
        if "*" in redacted:
            pii_text += redacted

        sentiment = None
        if data.get("sentiment"):
            confidence = cls._confidence(data.get("confidence"))
            overall = SentimentScore(
                label=data["sentiment"],
                score=max(confidence.positive, confidence.negative, confidence.neutral),
                confidence=confidence,
            )
            sentences = []
            for sentence in data.get("sentences") or []:
                sentence_confidence = cls._confidence(sentence.get("confidence"))
                sentences.append(
                    SentenceSentiment(
                        text=sentence.get("text", utterance_text),
                        sentiment=SentimentScore(
                            label=sentence.get("sentiment", "neutral"),
                            score=max(
                                sentence_confidence.positive,
                                sentence_confidence.negative,
                                sentence_confidence.neutral,
                            ),
                            confidence=sentence_confidence,
                        ),
                    )
                )
            sentiment = SentimentAnalysis(overall=overall, sentences=sentences)

        return EnrichmentResult(
            key_phrases=key_phrases_text,
            entities=entity_text,
            pii_redacted=pii_text,
            sentiment=sentiment,
        )

    # ==================== Live guidance ====================

    async def generate_guidance(self, full_transcript: str, question_template: str) -> str:
        messages = [
            {"role": "system", "content": GUIDANCE_SYSTEM_PROMPT.format(template=question_template)},
            {"role": "user", "content": "\n<TRANSCRIPT>\n" + json.dumps(full_transcript) + "<GO>"},
        ]
        start_time = time.time()
        content = await self._complete(messages, max_tokens=4000, temperature=0)
        logger.info(f"✅ [LiveGuidance] Completed in {time.time() - start_time:.2f}s")
        return content

    # ==================== Recommendations ====================

    async def generate_recommendation(self, full_transcript: str) -> str:
        if not full_transcript:
            return f"{PROVIDER_ERROR_MARKER} No transcript provided"
        if len(full_transcript) < 10:
            return f"{PROVIDER_ERROR_MARKER} Transcript too short for analysis"

        logger.info(f"💡 [Recommendation] Generating with full transcript ({len(full_transcript)} characters)")
        messages = [
            {"role": "system", "content": RECOMMENDATION_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Here's the COMPLETE conversation transcript between the advisor and client. "
                    "Please analyze the ENTIRE conversation context to provide comprehensive investment "
                    f"recommendations:\n\n{full_transcript}\n\n"
                    "Based on ALL the information discussed throughout this complete conversation, "
                    "provide investment recommendations."
                ),
            },
        ]
        start_time = time.time()
        content = await self._complete(messages, max_tokens=1500, temperature=0.3)
        logger.info(f"✅ [Recommendation] Completed in {time.time() - start_time:.2f}s")
        return content

    # ==================== Custom insights ====================

    async def complete_custom_prompt(self, full_transcript: str, custom_prompt: str) -> str:
        messages = [
            {"role": "system", "content": CUSTOM_PROMPT_SYSTEM},
            {"role": "user", "content": f"TRANSCRIPT:\n{full_transcript}\n\nINSTRUCTIONS:\n{custom_prompt}"},
        ]
        return await self._complete(messages, max_tokens=1000, temperature=0.1)
