"""Lexical emotion detection.

Used when the classification service is unavailable, so that the assistant
still reacts to obvious emotional cues.
"""

from contextweaver.domain.entities import Emotion, EmotionalState

EMOTION_KEYWORDS: dict[Emotion, tuple[str, ...]] = {
    Emotion.HAPPY: (
        "happy", "glad", "excited", "awesome", "great", "can't wait", "yay", "haha",
        "开心", "高兴", "兴奋", "期待", "太好了", "哈哈",
    ),
    Emotion.SAD: (
        "sad", "upset", "heartbroken", "depressed", "down", "cry", "miserable", "hurt",
        "难过", "伤心", "失落", "沮丧", "想哭", "心痛", "委屈",
    ),
    Emotion.ANXIOUS: (
        "anxious", "nervous", "worried", "scared", "afraid", "panic", "stressed", "overwhelmed",
        "焦虑", "紧张", "担心", "害怕", "压力", "崩溃", "不安",
    ),
    Emotion.FRUSTRATED: (
        "annoyed", "angry", "frustrated", "fed up", "sick of", "pissed", "irritated",
        "烦", "生气", "受够了", "无语", "气死", "烦躁",
    ),
    Emotion.TIRED: (
        "tired", "exhausted", "sleepy", "drained", "worn out", "no energy",
        "累", "困", "疲惫", "没力气", "不想动", "精疲力竭",
    ),
}

EMOTION_INTENSIFIERS: tuple[str, ...] = (
    "very", "really", "so ", "super", "extremely", "totally", "incredibly",
    "非常", "特别", "超级", "真的", "极其",
)

EMOTION_DIMINISHERS: tuple[str, ...] = (
    "a bit", "a little", "kind of", "kinda", "slightly", "somewhat",
    "有点", "稍微", "一点", "还好",
)

BASE_INTENSITY = 0.3


def detect_emotion(text: str, detected_at: int) -> EmotionalState:
    """Scan text for emotion keywords.

    The emotion with the most keyword hits wins (ties go to the emotion
    listed first). Intensity starts at 0.3, becomes 0.4 + 0.15 per hit when
    something matched, is raised by an intensifier and lowered by a
    diminisher.

    Args:
        text: Utterance to scan.
        detected_at: Epoch milliseconds to stamp on the result.

    Returns:
        Detected emotional state; NEUTRAL when nothing matched.
    """
    lower_text = text.lower()
    detected = Emotion.NEUTRAL
    max_score = 0
    trigger: str | None = None

    for emotion, keywords in EMOTION_KEYWORDS.items():
        score = 0
        for keyword in keywords:
            if keyword in lower_text:
                score += 1
                if trigger is None:
                    trigger = keyword
        if score > max_score:
            max_score = score
            detected = emotion

    intensity = BASE_INTENSITY
    if max_score > 0:
        intensity = min(1.0, 0.4 + max_score * 0.15)

    if any(word in lower_text for word in EMOTION_INTENSIFIERS):
        intensity = min(1.0, intensity + 0.15)
    if any(word in lower_text for word in EMOTION_DIMINISHERS):
        intensity = max(0.0, intensity - 0.2)

    return EmotionalState(
        primary=detected,
        intensity=round(intensity, 2),
        detected_at=detected_at,
        trigger=trigger,
    )
