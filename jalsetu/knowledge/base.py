"""Local farming knowledge base used when no LLM provider can answer."""

from typing import Dict, List, Tuple

MAX_SENTENCES = 3

IRRIGATION = [
    "For optimal irrigation, water deeply but infrequently. This encourages roots to grow deeper and makes plants more drought-resistant.",
    "Morning watering (5-7am) is best to minimize evaporation and fungal problems.",
    "Check soil moisture sensors daily and water when the level drops below 30% for most crops.",
    "Drip irrigation is 30-50% more efficient than sprinkler systems for most crops.",
    "For row crops, consider furrow irrigation to direct water exactly where needed.",
]

SOIL_MOISTURE = [
    "Soil moisture readings indicate how much water is available to your plants.",
    "Optimal levels vary by crop type, but generally: 0-20% is dry (needs watering), 20-60% is ideal for most crops, and above 60% may indicate overwatering.",
    "Sandy soils drain quickly and need more frequent watering, while clay soils retain moisture longer.",
    "Use mulch to help retain soil moisture and reduce evaporation.",
    "Consistent soil moisture is more important than frequent watering for most crops.",
]

WATER_QUALITY = [
    "Key water quality metrics include pH (acidity), TDS (dissolved solids), and temperature.",
    "Ideal pH ranges from 6.0-7.0 for most crops. Adjust with agricultural lime to raise pH or sulfur to lower it.",
    "High TDS (>1000 ppm) may indicate salinity issues which can damage plants.",
    "Water temperature should be close to soil temperature for optimal absorption.",
    "If using well water, test regularly for contaminants that could affect plant health.",
]

CONSERVATION = [
    "During drought, prioritize water for your most valuable crops.",
    "Use mulch to reduce evaporation by up to 70%.",
    "Implement drip irrigation if possible, which can save 30-50% of water compared to overhead sprinklers.",
    "Recycle household water (greywater) when safe for non-food crops.",
    "Water at night or early morning to minimize evaporation.",
]

WEATHER = [
    "Use weather forecasts to plan irrigation. Skip watering if rain is predicted within 24 hours.",
    "Wind increases evaporation rates. Avoid irrigation on windy days if possible.",
    "During heat waves, increase watering frequency but not necessarily volume.",
    "In cooler weather, reduce watering as evaporation and plant uptake decreases.",
    "Consider installing a rain gauge or weather station for more accurate local measurements.",
]

CROPS: Dict[str, str] = {
    "rice": "Rice typically requires standing water during most of its growing season. The ideal water depth is 5-10cm. For soil moisture levels outside of flooding periods, maintain 70-80% saturation.",
    "wheat": "Wheat is sensitive to both over and under-watering. Maintain soil moisture at 50-60% during the vegetative stage and 40-50% during grain filling.",
    "cotton": "Cotton needs consistent moisture during bud development and flowering. Water stress during this period can reduce yields by 30%.",
    "vegetables": "Vegetables generally need consistent moisture. Root vegetables need about 1 inch of water per week, leafy greens need more frequent watering with less volume.",
    "fruits": "Fruit trees need deep watering to encourage deep root growth. Water deeply once every 7-14 days depending on soil type and weather.",
}

GENERAL = [
    "I can help with questions about irrigation, soil moisture, water quality, crop-specific water needs, water conservation, and weather impacts on farming.",
    "For specific advice, try asking about irrigation schedules, soil moisture readings, water quality metrics, or how to conserve water during droughts.",
    "I have information about water requirements for crops like rice, wheat, cotton, vegetables, and fruit trees. Which would you like to know about?",
]

# Checked in this order; the order decides which sentences make the cut.
TOPICS: List[Tuple[str, Tuple[str, ...], List[str]]] = [
    ("irrigation", ("irrigat", "watering", "water schedule"), IRRIGATION),
    ("soil_moisture", ("soil", "moisture"), SOIL_MOISTURE),
    ("water_quality", ("quality", "ph", "tds"), WATER_QUALITY),
    ("conservation", ("drought", "save", "conserve"), CONSERVATION),
    ("weather", ("weather", "forecast", "prediction"), WEATHER),
    ("rice", ("rice", "paddy"), [CROPS["rice"]]),
    ("wheat", ("wheat",), [CROPS["wheat"]]),
    ("cotton", ("cotton",), [CROPS["cotton"]]),
    ("vegetables", ("vegetable", "garden"), [CROPS["vegetables"]]),
    ("fruits", ("fruit", "tree"), [CROPS["fruits"]]),
]


class KnowledgeBase:
    """Keyword matcher over the hand-written farming advice above.

    Matching is plain substring search on the lower-cased query, so
    ``"ph"`` also fires for words like ``"graph"``. That mirrors how the
    canned answers were always selected and keeps the output predictable.
    """

    def __init__(self, max_sentences: int = MAX_SENTENCES):
        self.max_sentences = max_sentences

    def topics(self, query: str) -> List[str]:
        """Return the names of all topics whose keywords appear in the query."""
        text = query.lower()
        return [name for name, keywords, _ in TOPICS if any(keyword in text for keyword in keywords)]

    def candidates(self, query: str) -> List[str]:
        """Return the ordered candidate pool for a query.

        Sentences are taken round-robin across the matched topics (first
        sentence of every topic, then the second, and so on), with topics
        in ``TOPICS`` order. A query touching a single topic therefore gets
        that topic's sentences in their written order, and a query naming a
        crop next to a general topic still gets the crop sentence. Plain
        concatenation in topic order would push the crop sentence past the
        first three and drop it from "How do I irrigate my rice field?".
        """
        text = query.lower()
        matched = [sentences for _, keywords, sentences in TOPICS if any(keyword in text for keyword in keywords)]
        if not matched:
            return list(GENERAL)

        pool: List[str] = []
        for depth in range(max(len(sentences) for sentences in matched)):
            for sentences in matched:
                if depth < len(sentences):
                    pool.append(sentences[depth])
        return pool

    def match(self, query: str) -> str:
        """Build a short answer from the sentences of every matching topic.

        Args:
            query: Free-text question from the farmer

        Returns:
            Up to ``max_sentences`` sentences joined by single spaces
        """
        pool = self.candidates(query)
        return " ".join(pool[:min(self.max_sentences, len(pool))])
