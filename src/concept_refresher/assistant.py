"""Chat-style study assistant: intent routing, prompts and fallback answers."""
import enum
import json
import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional

from concept_refresher.catalog import Catalog, Question, Subject, question_id_for
from concept_refresher.errors import GeneratorUnavailableError
from concept_refresher.generator import NullGenerator, TextGenerator
from concept_refresher.selector import pick_question
from concept_refresher.tracker import ProgressStore, to_ms

logger = logging.getLogger(__name__)

OPTION_LETTERS = ("A", "B", "C", "D")
DEFAULT_SUBJECT = "data_structures"

QUIZ_KEYWORDS = ("question", "quiz", "generate")
STUDY_PLAN_KEYWORDS = ("study plan", "schedule")

FALLBACK_RESPONSES = (
    "That's an interesting question! While my AI model is loading, I can tell you that "
    "consistent practice is key to mastering any subject.",
    "Great question! I'm still initializing my full AI capabilities, but I'd recommend "
    "breaking down complex topics into smaller, manageable pieces.",
    "I appreciate your curiosity! Once my AI model is fully loaded, I'll be able to provide "
    "more detailed and personalized responses.",
    "Excellent! Learning is a journey, and asking questions is the best way to grow. "
    "Keep that curiosity alive!",
    "That's a thoughtful inquiry! While I'm getting my full AI capabilities ready, remember "
    "that active learning through practice and repetition is very effective.",
)

FALLBACK_STUDY_PLAN = """Based on your performance, here's your personalized study plan:

1. **Focus Areas**: Concentrate on topics where your accuracy is below 70%
2. **Daily Practice**: Spend 15-20 minutes on challenging subjects
3. **Review Schedule**: Revisit completed topics every 3-5 days
4. **Progress Tracking**: Take quizzes regularly to monitor improvement
5. **Balanced Learning**: Mix difficult topics with easier ones to maintain motivation

Keep up the great work! Consistent practice leads to mastery."""

ENCOURAGEMENTS = (
    "Excellent work! Keep pushing forward!",
    "You're making great progress!",
    "Every mistake is a learning opportunity!",
    "Your dedication to learning shows!",
)

LEARNING_TIPS = (
    "Try breaking down complex problems into smaller parts.",
    "Practice similar problems to reinforce your understanding.",
    "Review the fundamentals when you get stuck.",
    "Use visual aids to help understand abstract concepts.",
)

QUESTION_PROMPT = """Generate a {difficulty} level multiple choice question about {subject}{focus}.

Format your response exactly like this:
QUESTION: [Your question here]
A) [Option A]
B) [Option B]
C) [Option C]
D) [Option D]
CORRECT: [A, B, C, or D]
EXPLANATION: [Brief explanation of why the answer is correct]

Make it educational and engaging."""

GENERAL_PROMPT = """You are a helpful AI learning assistant. The user said: "{message}".

Provide a helpful, educational response that:
1. Directly addresses their question or comment
2. Offers additional learning insights when relevant
3. Stays focused on educational topics
4. Is encouraging and supportive
5. Keeps the response under 150 words

Be conversational but informative."""

STUDY_PLAN_PROMPT = """Create a personalized study plan based on this performance data:
{performance}

Subjects: {subjects}

Provide 3-5 specific recommendations focusing on weak areas and building on strengths."""

FEEDBACK_PROMPT = """A student answered a quiz question {outcome} in {seconds} seconds.

Question: {question}
Student selected: {selected}
Correct answer: {correct}

Provide encouraging feedback with:
1. A motivational message (max 20 words)
2. Learning tip related to this topic (max 30 words)

Format:
ENCOURAGEMENT: [Your encouraging message]
TIP: [Your learning tip]"""


class Intent(enum.Enum):
    QUIZ = "quiz"
    STUDY_PLAN = "study_plan"
    GENERAL = "general"


def detect_intent(message: str) -> Intent:
    text = message.lower()
    if any(k in text for k in QUIZ_KEYWORDS):
        return Intent.QUIZ
    if any(k in text for k in STUDY_PLAN_KEYWORDS):
        return Intent.STUDY_PLAN
    return Intent.GENERAL


def format_question_response(question: Question, subject_name: str) -> str:
    options = "\n".join(f"{letter}) {option}" for letter, option in zip(OPTION_LETTERS, question.options))
    return (
        f"Here's a {question.difficulty} level question about {subject_name}:\n\n"
        f"**{question.question}**\n\n"
        f"{options}\n\n"
        "*Try answering it, and I can provide the correct answer and explanation.*"
    )


def parse_question_response(text: str, subject_key: str, difficulty: str, topic: str = "") -> Optional[Question]:
    """Build a Question from generated QUESTION/A-D/CORRECT/EXPLANATION lines.

    Returns None unless the text carries a question, four options and an
    explanation. An unreadable CORRECT line falls back to option A.
    """
    question = explanation = ""
    options: list[str] = []
    correct = 0
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("QUESTION:"):
            question = line[len("QUESTION:"):].strip()
        elif len(line) >= 2 and line[0] in OPTION_LETTERS and line[1] == ")":
            options.append(line[2:].strip())
        elif line.startswith("CORRECT:"):
            letter = line[len("CORRECT:"):].strip()[:1].upper()
            correct = OPTION_LETTERS.index(letter) if letter in OPTION_LETTERS else 0
        elif line.startswith("EXPLANATION:"):
            explanation = line[len("EXPLANATION:"):].strip()
    if not question or len(options) != len(OPTION_LETTERS) or not explanation:
        return None
    return Question(
        id=question_id_for(subject_key, question),
        question=question,
        options=tuple(options),
        correct=correct,
        explanation=explanation,
        difficulty=difficulty,
        topic=topic or subject_key,
        subject=subject_key,
    )


@dataclass
class Feedback:
    message: str
    encouragement: str
    learning_tip: str


def parse_feedback_response(text: str, explanation: str) -> Feedback:
    encouragement = tip = ""
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("ENCOURAGEMENT:"):
            encouragement = line[len("ENCOURAGEMENT:"):].strip()
        elif line.startswith("TIP:"):
            tip = line[len("TIP:"):].strip()
    return Feedback(
        message=explanation,
        encouragement=encouragement or "Great job engaging with the material!",
        learning_tip=tip or "Review this concept again to strengthen your understanding.",
    )


@dataclass
class ChatMessage:
    message: str
    sender: str  # "user" or "ai"
    timestamp: int


class StudyAssistant:
    def __init__(
        self,
        catalog: Catalog,
        store: ProgressStore,
        generator: Optional[TextGenerator] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.generator = generator or NullGenerator()
        self.rng = rng or random.Random()
        self.clock = clock or store.clock
        self.conversation_count = 0
        self.questions_generated = 0
        self.history: list[ChatMessage] = []

    def _now(self) -> int:
        return to_ms(self.clock())

    def _add(self, message: str, sender: str) -> None:
        self.history.append(ChatMessage(message, sender, self._now()))

    def _generate(self, prompt: str, max_tokens: int) -> Optional[str]:
        """Generated text, or None when the backend is absent, fails or returns nothing."""
        if not self.generator.available:
            return None
        try:
            text = self.generator.generate(prompt, max_tokens)
        except GeneratorUnavailableError:
            logger.warning("Text generation failed, using fallback", exc_info=True)
            return None
        if not isinstance(text, str):
            return None
        return text.strip() or None

    def fallback_response(self) -> str:
        return self.rng.choice(FALLBACK_RESPONSES)

    def respond(self, message: str) -> str:
        message = message.strip()
        if not message:
            return ""
        self._add(message, "user")
        intent = detect_intent(message)
        if intent is Intent.QUIZ:
            reply = self.quiz_response(message)
        elif intent is Intent.STUDY_PLAN:
            reply = self.study_plan()
        else:
            reply = self._generate(GENERAL_PROMPT.format(message=message), 200) or self.fallback_response()
        self._add(reply, "ai")
        self.conversation_count += 1
        return reply

    def mentioned_subject(self, message: str) -> Optional[Subject]:
        text = message.lower()
        squashed = text.replace(" ", "")
        for subject in self.catalog:
            name = subject.name.lower()
            if name in text or name.replace(" ", "") in squashed or subject.key in text:
                return subject
        return None

    def quiz_response(self, message: str) -> str:
        subject = (
            self.mentioned_subject(message)
            or self.catalog.get_subject(DEFAULT_SUBJECT)
            or next(iter(self.catalog), None)
        )
        if subject is None:
            return self.fallback_response()
        question = pick_question(
            subject, self.store.get_subject_performance(subject.key), self._now(), self.rng,
        )
        if question is None:
            return self.fallback_response()
        self.questions_generated += 1
        return format_question_response(question, subject.name)

    def generate_question(self, subject_key: str, difficulty: str = "intermediate", topic: str = "") -> Optional[Question]:
        """A generated practice question, or a catalog pick when generation fails."""
        subject = self.catalog.get_subject(subject_key)
        if subject is None:
            return None
        prompt = QUESTION_PROMPT.format(
            difficulty=difficulty, subject=subject.name, focus=f" focusing on {topic}" if topic else "",
        )
        text = self._generate(prompt, 300)
        question = parse_question_response(text, subject_key, difficulty, topic) if text else None
        if question is None:
            if text:
                logger.warning("Generated question for %s was malformed, using catalog", subject_key)
            question = pick_question(
                subject, self.store.get_subject_performance(subject_key), self._now(), self.rng, difficulty,
            )
        if question is not None:
            self.questions_generated += 1
        return question

    def study_plan(self) -> str:
        stats = self.store.get_overall_stats()
        analytics = self.store.state.analytics
        performance = {
            "totalQuestions": stats["total_questions"],
            "accuracy": round(stats["accuracy"], 1),
            "streak": stats["streak_current"],
            "weakTopics": [t.topic for t in analytics.weak_topics],
            "strongTopics": [t.topic for t in analytics.strong_topics],
        }
        studied = [
            self.catalog.get_subject(key).name
            for key in self.store.state.subjects
            if key in self.catalog
        ] or [s.name for s in self.catalog]
        prompt = STUDY_PLAN_PROMPT.format(
            performance=json.dumps(performance, indent=2), subjects=", ".join(studied),
        )
        return self._generate(prompt, 400) or FALLBACK_STUDY_PLAN

    def feedback(self, question: Question, selected: int, is_correct: bool, time_spent: int) -> Feedback:
        prompt = FEEDBACK_PROMPT.format(
            outcome="correctly" if is_correct else "incorrectly",
            seconds=round(time_spent / 1000),
            question=question.question,
            selected=question.options[selected],
            correct=question.correct_text,
        )
        text = self._generate(prompt, 150)
        if text:
            return parse_feedback_response(text, question.explanation)
        return Feedback(
            message=question.explanation,
            encouragement=self.rng.choice(ENCOURAGEMENTS),
            learning_tip=self.rng.choice(LEARNING_TIPS),
        )

    def clear_chat(self) -> None:
        self.history = []
        self.conversation_count = 0

    def export_chat(self) -> str:
        return json.dumps({
            "timestamp": self.clock().isoformat(),
            "conversations": self.conversation_count,
            "questionsGenerated": self.questions_generated,
            "history": [asdict(m) for m in self.history],
        }, indent=2)
