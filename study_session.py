"""Quiz and flashcard session state.

States are frozen; every transition returns a new state. A transition that is
not allowed in the current state returns the state unchanged instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

MCQ = "mcq"
SHORT = "short"


def normalize_answer(s: str | None) -> str:
    return (s or "").strip().lower()


# ============================================================================
# QUIZ
# ============================================================================

@dataclass(frozen=True)
class Question:
    text: str
    kind: str
    correct_answer: str
    options: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: dict) -> Question:
        """Build from the `/api/quiz` item shape: {question, type, options?, correctAnswer}."""
        kind = MCQ if d.get("type") == MCQ and d.get("options") else SHORT
        options = tuple(str(o) for o in (d.get("options") or [])) if kind == MCQ else ()
        return cls(
            text=str(d.get("question") or ""),
            kind=kind,
            correct_answer=str(d.get("correctAnswer") or ""),
            options=options,
        )

    def is_correct(self, answer: str | None) -> bool:
        return normalize_answer(answer) == normalize_answer(self.correct_answer)


@dataclass(frozen=True)
class AnswerRecord:
    correct: bool
    given_answer: str


@dataclass(frozen=True)
class QuizState:
    questions: tuple[Question, ...] = ()
    current_index: int = 0
    revealed: bool = False
    score: int = 0
    history: tuple[AnswerRecord, ...] = ()
    # chosen option (mcq) or typed text (short) for the current question
    answer: str | None = None

    @classmethod
    def start(cls, questions) -> QuizState:
        return cls(questions=tuple(questions))

    @classmethod
    def from_payload(cls, payload: dict) -> QuizState:
        items = payload.get("questions") or []
        return cls.start(Question.from_dict(q) for q in items if isinstance(q, dict))

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_completed(self) -> bool:
        return self.current_index >= self.total

    @property
    def current_question(self) -> Question | None:
        if self.is_completed:
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index == self.total - 1

    @property
    def can_check(self) -> bool:
        q = self.current_question
        if q is None or self.revealed or self.answer is None:
            return False
        if q.kind == SHORT:
            return bool(self.answer.strip())
        return True

    @property
    def score_label(self) -> str:
        return f"{self.score} / {self.total}"

    @property
    def percentage(self) -> float:
        if not self.total:
            return 0.0
        return 100.0 * self.score / self.total

    @property
    def progress(self) -> float:
        """Fraction of the quiz done, counting the current question once it is revealed."""
        if not self.total:
            return 1.0
        done = min(self.total, self.current_index + (1 if self.revealed else 0))
        return done / self.total

    def select_answer(self, value: str) -> QuizState:
        q = self.current_question
        if q is None or self.revealed or not isinstance(value, str):
            return self
        if q.kind == MCQ and value not in q.options:
            return self
        return replace(self, answer=value)

    def check_answer(self) -> QuizState:
        if not self.can_check:
            return self
        correct = self.current_question.is_correct(self.answer)
        return replace(
            self,
            revealed=True,
            score=self.score + (1 if correct else 0),
            history=self.history + (AnswerRecord(correct=correct, given_answer=self.answer or ""),),
        )

    def next(self) -> QuizState:
        if self.is_completed or not self.revealed:
            return self
        return replace(self, current_index=self.current_index + 1, revealed=False, answer=None)

    def reset(self) -> QuizState:
        return QuizState(questions=self.questions)


# ============================================================================
# FLASHCARDS
# ============================================================================

NO_CARDS_MESSAGE = "No flashcards available yet."


@dataclass(frozen=True)
class Flashcard:
    question: str
    answer: str


@dataclass(frozen=True)
class FlashcardState:
    cards: tuple[Flashcard, ...] = ()
    current_index: int = 0
    flipped: bool = False

    @classmethod
    def start(cls, cards) -> FlashcardState:
        return cls(cards=tuple(cards))

    @classmethod
    def from_payload(cls, payload: dict) -> FlashcardState:
        items = payload.get("cards") or []
        return cls.start(
            Flashcard(question=str(c.get("question") or ""), answer=str(c.get("answer") or ""))
            for c in items
            if isinstance(c, dict)
        )

    @property
    def is_empty(self) -> bool:
        return not self.cards

    @property
    def current_card(self) -> Flashcard | None:
        if self.is_empty:
            return None
        return self.cards[self.current_index]

    @property
    def visible_side(self) -> str:
        return "Answer" if self.flipped else "Question"

    @property
    def visible_text(self) -> str:
        card = self.current_card
        if card is None:
            return NO_CARDS_MESSAGE
        return card.answer if self.flipped else card.question

    @property
    def position_label(self) -> str:
        if self.is_empty:
            return NO_CARDS_MESSAGE
        return f"{self.current_index + 1} / {len(self.cards)}"

    def flip(self) -> FlashcardState:
        if self.is_empty:
            return self
        return replace(self, flipped=not self.flipped)

    def previous(self) -> FlashcardState:
        if self.is_empty:
            return self
        idx = len(self.cards) - 1 if self.current_index == 0 else self.current_index - 1
        return replace(self, current_index=idx, flipped=False)

    def next(self) -> FlashcardState:
        if self.is_empty:
            return self
        idx = 0 if self.current_index == len(self.cards) - 1 else self.current_index + 1
        return replace(self, current_index=idx, flipped=False)

    def jump_to(self, index: int) -> FlashcardState:
        if self.is_empty or isinstance(index, bool) or not isinstance(index, int):
            return self
        if not 0 <= index < len(self.cards):
            return self
        return replace(self, current_index=index, flipped=False)
