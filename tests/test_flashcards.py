import pytest

from study_session import NO_CARDS_MESSAGE, Flashcard, FlashcardState


@pytest.fixture
def deck():
    return FlashcardState.start(Flashcard(question=f"Q{i}", answer=f"A{i}") for i in range(4))


def test_previous_wraps_to_last(deck):
    assert deck.previous().current_index == 3


def test_next_wraps_to_first(deck):
    at_last = deck.jump_to(3)

    assert at_last.next().current_index == 0


def test_next_and_previous_step_by_one(deck):
    assert deck.next().current_index == 1
    assert deck.next().next().previous().current_index == 1


def test_flip_toggles_without_moving(deck):
    flipped = deck.flip()

    assert flipped.flipped
    assert flipped.current_index == 0
    assert flipped.visible_side == "Answer"
    assert flipped.visible_text == "A0"
    assert not flipped.flip().flipped


@pytest.mark.parametrize("move", ["next", "previous"])
def test_navigation_shows_question_side(deck, move):
    moved = getattr(deck.flip(), move)()

    assert not moved.flipped
    assert moved.visible_side == "Question"


def test_jump_to(deck):
    state = deck.flip().jump_to(2)

    assert state.current_index == 2
    assert not state.flipped
    assert state.current_card == Flashcard(question="Q2", answer="A2")
    assert state.position_label == "3 / 4"


@pytest.mark.parametrize("index", [-1, 4, 100, "1", 1.0, True, None])
def test_jump_to_out_of_range_is_ignored(deck, index):
    assert deck.jump_to(index) is deck


def test_transitions_do_not_mutate(deck):
    deck.next()
    deck.flip()

    assert deck.current_index == 0
    assert not deck.flipped


def test_empty_deck_disables_transitions():
    empty = FlashcardState.start([])

    assert empty.is_empty
    assert empty.current_card is None
    assert empty.visible_text == NO_CARDS_MESSAGE
    assert empty.position_label == NO_CARDS_MESSAGE
    for transition in (empty.flip, empty.next, empty.previous):
        assert transition() is empty
    assert empty.jump_to(0) is empty


def test_single_card_wraps_onto_itself():
    one = FlashcardState.start([Flashcard("Q", "A")])

    assert one.next().current_index == 0
    assert one.previous().current_index == 0


def test_from_payload_skips_non_objects():
    state = FlashcardState.from_payload({"cards": [{"question": "Q", "answer": "A"}, "bad", None]})

    assert state.cards == (Flashcard("Q", "A"),)
    assert FlashcardState.from_payload({}).is_empty
