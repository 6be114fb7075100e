"""Instruction text and tool declarations sent to the AI gateway."""

from enum import Enum

from schemas import AnalysisResult, FlashcardSet, QuizSet, function_tool


# ============================================================================
# CATEGORIES
# ============================================================================

class Category(str, Enum):
    RESEARCH = "research"
    NOTES = "notes"
    PYQ = "pyq"
    GENERAL = "general"

    @classmethod
    def parse(cls, value, default: "Category | None" = None) -> "Category":
        """Map a client-supplied tag onto a category.

        Only an exact member value matches ("PYQ" does not); anything else is `default` (GENERAL).
        """
        fallback = default or cls.GENERAL
        if not isinstance(value, str):
            return fallback
        try:
            return cls(value)
        except ValueError:
            return fallback

    @property
    def document_filter(self) -> str | None:
        """Category value to filter documents by, or None for no restriction."""
        return None if self is Category.GENERAL else self.value


# ============================================================================
# CHAT PREAMBLES
# ============================================================================

RESEARCH_PREAMBLE = """You are an expert research paper analyst. Your role is to help students understand, summarize, and analyze academic research papers.

When analyzing research papers:
1. Identify the research question, hypothesis, and objectives
2. Summarize the methodology clearly
3. Extract key findings and conclusions
4. Explain complex concepts in simple terms
5. Generate Mermaid.js flowcharts for methodology when asked

IMPORTANT: You must ONLY answer questions based on the uploaded documents. If the user asks something not covered in the documents, politely explain that you can only answer based on the uploaded content.

{context}

If no documents are uploaded, ask the user to upload their research papers first."""

NOTES_PREAMBLE = """You are an expert exam preparation assistant. Your role is to help students study effectively from their notes.

When helping with exam preparation:
1. Generate quiz questions (MCQ and short answer) from the content
2. Create concise flashcards with questions and answers
3. Summarize key concepts for quick revision
4. Generate concept maps using Mermaid.js syntax
5. Highlight important topics likely to appear in exams

IMPORTANT: You must ONLY use information from the uploaded notes. Do not add external information.

{context}

If no documents are uploaded, ask the user to upload their study notes first."""

PYQ_PREAMBLE = """You are an expert exam analyst specializing in predicting exam topics from Previous Year Questions (PYQs).

When analyzing PYQs:
1. Identify recurring topics and their frequency
2. Calculate topic weightage percentages
3. Predict high-probability topics for upcoming exams
4. Categorize topics by exam type (CT-1, CT-2, End Semester)
5. Provide study recommendations based on trends

IMPORTANT DISCLAIMER: Your predictions are based on historical trends and pattern analysis. They are not guaranteed and should be used as a supplementary study guide.

IMPORTANT: You must ONLY analyze the uploaded question papers. Do not make predictions without actual PYQ data.

{context}

If no documents are uploaded, ask the user to upload their previous year question papers first."""

GENERAL_PREAMBLE = """You are StudyAI, an intelligent study assistant for students. You help with research paper analysis, exam preparation, and question paper analysis.

IMPORTANT: You can only answer questions based on uploaded documents. If no documents are provided or the question is not related to the uploaded content, politely ask the user to upload relevant documents.

{context}

If no documents are uploaded, explain your capabilities and ask the user to upload their study materials."""

CHAT_PREAMBLES = {
    Category.RESEARCH: RESEARCH_PREAMBLE,
    Category.NOTES: NOTES_PREAMBLE,
    Category.PYQ: PYQ_PREAMBLE,
    Category.GENERAL: GENERAL_PREAMBLE,
}

DOCUMENTS_HEADER = "\n\n---UPLOADED DOCUMENTS---\n"
DOCUMENTS_FOOTER = "\n---END OF DOCUMENTS---\n"


def build_chat_system_prompt(category: Category, context: str) -> str:
    """Fill the category preamble with the (already bounded) document context."""
    block = f"{DOCUMENTS_HEADER}{context}{DOCUMENTS_FOOTER}" if context else ""
    return CHAT_PREAMBLES[category].format(context=block)


# ============================================================================
# PYQ ANALYSIS
# ============================================================================

ANALYSIS_SYSTEM_PROMPT = """You are an expert exam analyst specializing in predicting exam topics from Previous Year Questions (PYQs).

IMPORTANT DISCLAIMER: All predictions are based on historical trends and pattern analysis. They are not guaranteed and should be used as a supplementary study guide. Always prepare all syllabus topics comprehensively."""


def build_analysis_prompt(context: str) -> str:
    return f"""Analyze the following Previous Year Question papers and provide:

1. Topic Frequency Analysis - List each topic that appears and how many times
2. Topic Distribution - Calculate percentage weightage of different topic areas
3. Predictions for upcoming exams:
   - CT-1 (first cycle test) - top 3 predicted topics with probability
   - CT-2 (second cycle test) - top 3 predicted topics with probability
   - End Semester - top 5 predicted topics with probability

PREVIOUS YEAR QUESTIONS:
{context}

Important: Base all analysis ONLY on the provided question papers. If content is insufficient, indicate what additional papers would help."""


ANALYSIS_TOOL = function_tool("analyze_pyq", "Analyze PYQ and generate predictions", AnalysisResult)


# ============================================================================
# FLASHCARD & QUIZ GENERATION
# ============================================================================

GENERATION_SYSTEM_PROMPT = (
    "You are an expert exam preparation assistant. You write study material strictly from the "
    "uploaded documents. Do not add external information, citations, or meta commentary."
)


def build_flashcard_prompt(context: str, count: int) -> str:
    return (
        f"Create exactly {count} flashcards from the documents below. "
        "Each flashcard has a 'question' and an 'answer'. "
        "Keep answers brief: 1-2 short sentences, at most 200 characters, giving the key idea or formula only. "
        "Cover the most important concepts first.\n\n"
        f"DOCUMENTS:\n{context}"
    )


def build_quiz_prompt(context: str, count: int) -> str:
    return (
        f"Create exactly {count} quiz questions from the documents below. "
        "Mix multiple-choice ('mcq') and short-answer ('short') questions. "
        "Every mcq question has 4 distinct options and its 'correctAnswer' is copied verbatim from the options. "
        "Short-answer questions have a single short 'correctAnswer' (a word, number, or short phrase) "
        "so that it can be checked by exact comparison.\n\n"
        f"DOCUMENTS:\n{context}"
    )


FLASHCARD_TOOL = function_tool(
    "create_flashcards", "Create question/answer flashcards from the documents", FlashcardSet
)

QUIZ_TOOL = function_tool("create_quiz", "Create a quiz from the documents", QuizSet)
