"""Meta-cognition plugin — tracks conversation patterns across turns."""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.pipeline.base import PluginBase, PluginContext
from src.pipeline.context import RequestContext, ResponseContext

TOPIC_KEYWORDS = (
    "plugin",
    "copilot",
    "trust",
    "safety",
    "autonomous",
    "consciousness",
    "github",
)
DEFAULT_INSIGHT_INTERVAL = 10
INTERVAL_CONFIG_KEY = "meta_cognition.insight_interval"


def extract_topics(text: str) -> List[str]:
    """Known topic keywords mentioned in text, in keyword order."""
    lowered = text.lower()
    return [keyword for keyword in TOPIC_KEYWORDS if keyword in lowered]


def detect_emotion(text: str) -> Optional[str]:
    lowered = text.lower()
    if "!" in lowered or "excited" in lowered or "awesome" in lowered:
        return "excitement"
    if "?" in lowered and "how" in lowered:
        return "curiosity"
    if "worried" in lowered or "concerned" in lowered:
        return "concern"
    if "great" in lowered or "good" in lowered or "nice" in lowered:
        return "satisfaction"
    return None


class MetaCognitionPlugin(PluginBase):
    """Count turns, tag topics and emotions, and summarize periodically.

    Every ``insight_interval`` turns the next response carries an
    ``insights`` metadata entry and the summary is logged.
    """

    id = "meta-cognition"
    name = "Meta-Cognition Plugin"
    version = "1.0.0"
    description = "Adds meta-cognitive awareness and conversation analysis"
    author = "BarrerSoftware"

    def __init__(self, insight_interval: Optional[int] = None) -> None:
        super().__init__()
        self._explicit_interval = insight_interval
        self.insight_interval = (
            DEFAULT_INSIGHT_INTERVAL if insight_interval is None else insight_interval
        )
        self.turn_count = 0
        self.topics: Counter[str] = Counter()
        self.emotions: Counter[str] = Counter()
        self._last_insight_turn = 0

    async def initialize(self, context: PluginContext) -> None:
        await super().initialize(context)
        if self._explicit_interval is None:
            configured = context.configuration.get(INTERVAL_CONFIG_KEY)
            if configured is not None:
                self.insight_interval = int(configured)
        if self.insight_interval < 1:
            raise ValueError(
                f"insight interval must be positive, got {self.insight_interval}"
            )
        self.logger.info(
            "Tracking conversation patterns",
            insight_interval=self.insight_interval,
        )

    async def before_request(self, request: RequestContext) -> RequestContext:
        self.turn_count += 1

        topics = extract_topics(request.prompt)
        self.topics.update(topics)

        emotion = detect_emotion(request.prompt)
        if emotion:
            self.emotions[emotion] += 1
            self.logger.debug("Detected emotion", emotion=emotion)

        self.logger.debug("Turn analyzed", turn=self.turn_count, topics=topics)
        metadata = dict(request.metadata)
        metadata["turn"] = self.turn_count
        metadata["topics"] = ", ".join(topics)
        return request.evolve(metadata=metadata)

    async def after_response(self, response: ResponseContext) -> ResponseContext:
        due = (
            self.turn_count > 0
            and self.turn_count % self.insight_interval == 0
            and self.turn_count != self._last_insight_turn
        )
        if not due:
            return response

        self._last_insight_turn = self.turn_count
        insights = self.insights()
        self.logger.info("Conversation insights", **insights)
        return response.with_metadata("insights", insights)

    async def shutdown(self) -> None:
        self.logger.info("Final conversation insights", **self.insights())

    def insights(self) -> Dict[str, Any]:
        """Summary of the conversation so far."""
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "total_turns": self.turn_count,
            "unique_topics": len(self.topics),
            "top_topics": dict(self.topics.most_common(5)),
            "emotional_profile": dict(self.emotions),
        }


PLUGIN_FACTORIES = [MetaCognitionPlugin]
