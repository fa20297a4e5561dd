"""Topic catalog."""

from dataclasses import dataclass

from contextweaver.domain.entities.context import Emotion


@dataclass(frozen=True)
class TopicRule:
    """A known conversation topic.

    Attributes:
        id: Unique topic identifier.
        name: Display name.
        keywords: Trigger keywords.
        synonyms: Alternative phrasings.
        emotion: Emotion usually associated with the topic.
        emotion_intensity: Typical intensity of that emotion.
        memory_questions: Seed questions for memory retrieval.
    """

    id: str
    name: str
    keywords: tuple[str, ...]
    synonyms: tuple[str, ...]
    emotion: Emotion
    emotion_intensity: float
    memory_questions: tuple[str, ...]


TOPIC_RULES: tuple[TopicRule, ...] = (
    # Emotional
    TopicRule(
        id="breakup",
        name="breakup",
        keywords=("broke up", "breakup", "break up", "my ex", "dumped", "分手", "失恋"),
        synonyms=("relationship ended", "heartbreak"),
        emotion=Emotion.SAD,
        emotion_intensity=0.8,
        memory_questions=(
            "How has the user handled breakups or heartbreak before?",
            "What has helped the user when feeling down?",
            "What patterns or worries does the user have in close relationships?",
        ),
    ),
    TopicRule(
        id="stress",
        name="stress",
        keywords=("stress", "stressed", "pressure", "overwhelmed", "burned out", "压力", "崩溃"),
        synonyms=("work pressure", "can't breathe"),
        emotion=Emotion.ANXIOUS,
        emotion_intensity=0.7,
        memory_questions=(
            "What usually makes the user feel stressed?",
            "How does the user cope with stress and anxiety?",
            "What helps the user relax?",
        ),
    ),
    TopicRule(
        id="loneliness",
        name="loneliness",
        keywords=("lonely", "alone", "no one", "by myself", "孤独", "寂寞"),
        synonyms=("isolated", "left out"),
        emotion=Emotion.SAD,
        emotion_intensity=0.6,
        memory_questions=(
            "When does the user tend to feel lonely?",
            "How does the user deal with loneliness?",
            "Which activities make the user feel less alone?",
        ),
    ),
    # Everyday life
    TopicRule(
        id="travel",
        name="travel",
        keywords=("travel", "trip", "vacation", "camping", "packing", "suitcase", "luggage", "旅行", "行李"),
        synonyms=("going away", "pack my bag"),
        emotion=Emotion.HAPPY,
        emotion_intensity=0.6,
        memory_questions=(
            "Where has the user travelled before?",
            "What kind of trips does the user enjoy?",
            "What preparation habits or worries does the user have before a trip?",
            "Who does the user usually travel with?",
            "What upcoming trips or events has the user mentioned?",
        ),
    ),
    TopicRule(
        id="fitness",
        name="fitness",
        keywords=("gym", "workout", "exercise", "running", "run", "健身", "运动"),
        synonyms=("work out", "training"),
        emotion=Emotion.NEUTRAL,
        emotion_intensity=0.3,
        memory_questions=(
            "What are the user's exercise habits?",
            "How does the user procrastinate before working out?",
            "What motivates the user to exercise?",
            "Does the user have physical concerns about exercising?",
        ),
    ),
    TopicRule(
        id="hobby",
        name="hobby",
        keywords=("hobby", "guitar", "piano", "painting", "drawing", "photography", "practice", "爱好"),
        synonyms=("side project", "learning a skill"),
        emotion=Emotion.HAPPY,
        emotion_intensity=0.5,
        memory_questions=(
            "What hobbies does the user have?",
            "What new skills is the user learning?",
            "What patterns does the user show when learning something new?",
        ),
    ),
    TopicRule(
        id="food",
        name="food",
        keywords=("eat", "food", "cooking", "cook", "restaurant", "takeout", "dinner", "美食", "做饭"),
        synonyms=("grab a bite", "meal"),
        emotion=Emotion.HAPPY,
        emotion_intensity=0.4,
        memory_questions=(
            "What food does the user like?",
            "What eating habits or preferences does the user have?",
            "Which new restaurants or dishes has the user tried recently?",
        ),
    ),
    # Work
    TopicRule(
        id="work",
        name="work",
        keywords=("work", "job", "office", "project", "meeting", "deadline", "boss", "工作", "上班"),
        synonyms=("at work", "career"),
        emotion=Emotion.NEUTRAL,
        emotion_intensity=0.4,
        memory_questions=(
            "How does the user procrastinate at work?",
            "How does the user feel about work tasks?",
            "What helps the user focus on work?",
        ),
    ),
    TopicRule(
        id="coding",
        name="coding",
        keywords=("coding", "code", "programming", "bug", "debugging", "写代码", "编程"),
        synonyms=("writing software", "developing"),
        emotion=Emotion.NEUTRAL,
        emotion_intensity=0.3,
        memory_questions=(
            "What distracts the user while coding?",
            "How does the user feel about programming tasks?",
            "What helps the user get into flow?",
        ),
    ),
    TopicRule(
        id="study",
        name="study",
        keywords=("study", "studying", "exam", "homework", "revision", "学习", "考试"),
        synonyms=("school work", "cramming"),
        emotion=Emotion.NEUTRAL,
        emotion_intensity=0.4,
        memory_questions=(
            "How does the user procrastinate on studying?",
            "How does the user feel about study tasks?",
            "What helps the user concentrate on studying?",
        ),
    ),
    # Social
    TopicRule(
        id="friends",
        name="friends",
        keywords=("friend", "friends", "best friend", "party", "hang out", "朋友", "聚会"),
        synonyms=("social life", "meet up"),
        emotion=Emotion.HAPPY,
        emotion_intensity=0.5,
        memory_questions=(
            "Who does the user usually spend time with?",
            "What social preferences or worries does the user have?",
            "Which friends has the user mentioned by name?",
        ),
    ),
    TopicRule(
        id="family",
        name="family",
        keywords=("family", "parents", "mom", "dad", "home", "家人", "父母"),
        synonyms=("relatives", "back home"),
        emotion=Emotion.NEUTRAL,
        emotion_intensity=0.5,
        memory_questions=(
            "How is the user's relationship with their family?",
            "What role or responsibilities does the user have in the family?",
            "Which family members has the user mentioned?",
        ),
    ),
    TopicRule(
        id="relationship",
        name="relationship",
        keywords=("boyfriend", "girlfriend", "partner", "dating", "crush", "date", "恋爱", "对象"),
        synonyms=("love life", "seeing someone"),
        emotion=Emotion.HAPPY,
        emotion_intensity=0.6,
        memory_questions=(
            "What is the user's current relationship status?",
            "What patterns or expectations does the user have in relationships?",
            "Which people or events related to relationships has the user mentioned?",
        ),
    ),
    # Health
    TopicRule(
        id="sleep",
        name="sleep",
        keywords=("sleep", "insomnia", "stayed up", "can't sleep", "wake up early", "sleepy", "失眠", "熬夜"),
        synonyms=("rest", "bedtime"),
        emotion=Emotion.TIRED,
        emotion_intensity=0.5,
        memory_questions=(
            "What are the user's sleep habits?",
            "What sleep problems does the user have?",
            "What helps the user fall asleep?",
        ),
    ),
    TopicRule(
        id="health",
        name="health",
        keywords=("sick", "ill", "doctor", "hospital", "medicine", "not feeling well", "生病", "医院"),
        synonyms=("health issue", "under the weather"),
        emotion=Emotion.ANXIOUS,
        emotion_intensity=0.5,
        memory_questions=(
            "What health concerns does the user have?",
            "How is the user's physical condition?",
            "What healthy habits does the user keep?",
        ),
    ),
)


def find_topic_rule(topic_id: str) -> TopicRule | None:
    """Look up a catalog entry by id.

    Args:
        topic_id: Topic identifier.

    Returns:
        The matching rule, or None if the id is unknown.
    """
    for rule in TOPIC_RULES:
        if rule.id == topic_id:
            return rule
    return None
