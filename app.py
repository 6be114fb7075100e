# ============================================================================
# IMPORTS
# ============================================================================

# Standard Library
import logging
import os

# Third-Party: Flask & Extensions
from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

# Third-Party: Validation
from pydantic import ValidationError

# Third-Party: Environment & Configuration
from dotenv import load_dotenv
load_dotenv()

# Third-Party: Firebase
import firebase_admin
from firebase_admin import credentials, auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

# Third-Party: Database
import psycopg2

# Local
from errors import (
    BadInput,
    DocumentStoreError,
    GenerationFailed,
    IdentityServiceUnavailable,
    InvalidToken,
    NoDocuments,
    StudyAIError,
    Unauthorized,
)
from gateway import DEFAULT_GATEWAY_URL, DEFAULT_MODEL, AIGateway
from prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_TOOL,
    FLASHCARD_TOOL,
    GENERATION_SYSTEM_PROMPT,
    QUIZ_TOOL,
    Category,
    build_analysis_prompt,
    build_chat_system_prompt,
    build_flashcard_prompt,
    build_quiz_prompt,
)
from schemas import AnalysisResult, FlashcardItem, FlashcardSet, QuizItem, QuizSet, ToolResult


# ============================================================================
# LOGGING
# ============================================================================

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("studyai")


# ============================================================================
# FLASK APP SETUP
# ============================================================================

MAX_CONTEXT_CHARS = 50_000
MAX_DOCUMENT_CHARS = 20_000
MAX_MESSAGES = 50
MAX_MESSAGE_LENGTH = 10_000
MAX_GENERATED_ITEMS = 30
DEFAULT_GENERATED_ITEMS = 10

TRUNCATION_MARKER = "\n[Content truncated...]"
NO_TEXT_PLACEHOLDER = "[No text extracted yet]"

app = Flask(__name__)
CORS(
    app,
    resources={r"/api/*": {"origins": "*"}},
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    send_wildcard=True,
)

app.config.update(
    DATABASE_URL=os.getenv("DATABASE_URL"),
    AI_GATEWAY_URL=os.getenv("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL),
    AI_GATEWAY_API_KEY=os.getenv("AI_GATEWAY_API_KEY"),
    AI_MODEL=os.getenv("AI_MODEL", DEFAULT_MODEL),
    AI_GATEWAY_CONNECT_TIMEOUT=float(os.getenv("AI_GATEWAY_CONNECT_TIMEOUT", "10")),
    AI_GATEWAY_READ_TIMEOUT=float(os.getenv("AI_GATEWAY_READ_TIMEOUT", "120")),
    MAX_CONTEXT_CHARS=MAX_CONTEXT_CHARS,
    MAX_DOCUMENT_CHARS=MAX_DOCUMENT_CHARS,
    MAX_MESSAGES=MAX_MESSAGES,
    MAX_MESSAGE_LENGTH=MAX_MESSAGE_LENGTH,
)


# ============================================================================
# FIREBASE ADMIN SETUP
# ============================================================================

app.config["FIREBASE_READY"] = False
try:
    cred = credentials.Certificate(os.getenv("FIREBASE_CREDENTIALS", "firebase-service-account.json"))
    firebase_admin.initialize_app(cred)
    app.config["FIREBASE_READY"] = True
    logger.info("Firebase Admin connected")
except Exception as e:
    logger.warning("Firebase Admin connection failed: %s", e)


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

def get_connection():
    try:
        return psycopg2.connect(app.config["DATABASE_URL"])
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return None


def fetch_documents(user_id: str, category: str | None = None) -> list[dict]:
    """Read the caller's documents, optionally restricted to one category.

    The owner filter always comes from the verified token, never from the request.
    """
    conn = get_connection()
    if not conn:
        raise DocumentStoreError()
    cur = conn.cursor()
    try:
        if category:
            cur.execute(
                """
                SELECT filename, extracted_text, file_type, category, created_at
                FROM documents
                WHERE user_id = %s AND category = %s
                ORDER BY created_at
                """,
                (user_id, category),
            )
        else:
            cur.execute(
                """
                SELECT filename, extracted_text, file_type, category, created_at
                FROM documents
                WHERE user_id = %s
                ORDER BY created_at
                """,
                (user_id,),
            )
        rows = cur.fetchall()
    except psycopg2.Error as e:
        logger.error("Database error: %s", e)
        raise DocumentStoreError() from e
    finally:
        cur.close()
        conn.close()
    return [
        {
            "filename": filename,
            "extracted_text": extracted_text,
            "file_type": file_type,
            "category": doc_category,
            "created_at": created_at,
        }
        for filename, extracted_text, file_type, doc_category, created_at in rows
    ]


# ============================================================================
# AUTHENTICATION
# ============================================================================

def authenticate() -> str:
    """Verify the bearer credential and return the caller's user id."""
    header = request.headers.get("Authorization") or ""
    if not header.startswith("Bearer "):
        raise Unauthorized()
    token = header[len("Bearer "):].strip()
    if not token:
        raise Unauthorized()
    if not app.config["FIREBASE_READY"]:
        raise IdentityServiceUnavailable()
    try:
        claims = firebase_auth.verify_id_token(token)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.info("Rejected bearer token: %s", type(e).__name__)
        raise InvalidToken() from e
    if not claims:
        raise InvalidToken()
    user_id = claims.get("sub") or claims.get("uid")
    if not user_id:
        raise InvalidToken("User ID not found in token")
    return str(user_id)


# ============================================================================
# UTILITY FUNCTIONS - CONTEXT ASSEMBLY
# ============================================================================

def assemble_context(
    documents: list[dict],
    label: str = "Document",
    placeholder: str = "",
    max_document_chars: int = MAX_DOCUMENT_CHARS,
    max_total_chars: int = MAX_CONTEXT_CHARS,
) -> str:
    """Concatenate `[label n: filename]` blocks into a string of at most `max_total_chars`.

    Each document's text is cut to `max_document_chars` first; if the whole still
    overflows it is cut so that it ends with TRUNCATION_MARKER.
    """
    blocks: list[str] = []
    for i, doc in enumerate(documents, start=1):
        text = (doc.get("extracted_text") or "")[:max_document_chars] or placeholder
        blocks.append(f"[{label} {i}: {doc.get('filename')}]\n{text}")
    context = "\n\n".join(blocks)
    if len(context) > max_total_chars:
        context = context[: max(0, max_total_chars - len(TRUNCATION_MARKER))] + TRUNCATION_MARKER
    return context


def context_for(documents: list[dict], label: str = "Document", placeholder: str = "") -> str:
    return assemble_context(
        documents,
        label=label,
        placeholder=placeholder,
        max_document_chars=app.config["MAX_DOCUMENT_CHARS"],
        max_total_chars=app.config["MAX_CONTEXT_CHARS"],
    )


# ============================================================================
# UTILITY FUNCTIONS - REQUEST PARSING
# ============================================================================

def parse_chat_messages(data) -> list[dict]:
    """Validate chat turns; over-long content is cut, too many turns are rejected."""
    msgs = data.get("messages") if isinstance(data, dict) else None
    if not isinstance(msgs, list):
        raise BadInput("Messages array is required")
    limit = app.config["MAX_MESSAGES"]
    if len(msgs) > limit:
        raise BadInput(f"Maximum {limit} messages allowed")
    max_len = app.config["MAX_MESSAGE_LENGTH"]
    sanitized: list[dict] = []
    for m in msgs:
        if not isinstance(m, dict) or m.get("role") not in ("user", "assistant"):
            raise BadInput("Invalid message role")
        content = m.get("content")
        if not isinstance(content, str):
            raise BadInput("Message content must be a string")
        sanitized.append({"role": m["role"], "content": content[:max_len]})
    return sanitized


def parse_generation_options(data) -> tuple[Category, int]:
    """Body of the flashcard/quiz generators: { category?: str, count?: int }."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise BadInput("Request body must be a JSON object")
    raw_category = data.get("category")
    category = Category.NOTES if raw_category is None else Category.parse(raw_category)
    count = data.get("count", DEFAULT_GENERATED_ITEMS)
    if isinstance(count, bool) or not isinstance(count, int):
        raise BadInput("count must be an integer")
    return category, max(1, min(MAX_GENERATED_ITEMS, count))


# ============================================================================
# UTILITY FUNCTIONS - AI GATEWAY
# ============================================================================

def get_gateway() -> AIGateway:
    return AIGateway(
        api_key=app.config["AI_GATEWAY_API_KEY"],
        url=app.config["AI_GATEWAY_URL"],
        model=app.config["AI_MODEL"],
        timeout=(app.config["AI_GATEWAY_CONNECT_TIMEOUT"], app.config["AI_GATEWAY_READ_TIMEOUT"]),
    )


def run_extraction(
    gateway: AIGateway,
    messages: list[dict],
    tool: dict,
    model: type[ToolResult],
    failure_message: str,
) -> ToolResult:
    """Forced function call whose arguments must validate against the tool's result model."""
    name = tool["function"]["name"]
    try:
        args = gateway.call_function(messages, tool)
    except GenerationFailed as e:
        raise GenerationFailed(failure_message) from e
    try:
        return model.model_validate(args)
    except ValidationError as e:
        logger.warning("Rejected %s result (schema v%s): %s", name, model.schema_version, e)
        raise GenerationFailed(failure_message) from e


def load_generation_documents(user_id: str, category: Category) -> list[dict]:
    documents = fetch_documents(user_id, category.document_filter)
    if not documents:
        raise NoDocuments()
    return documents


def clean_flashcards(items: list[FlashcardItem], count: int) -> list[dict]:
    cards: list[dict] = []
    for it in items:
        q = it.question.strip()
        a = it.answer.strip()
        if not q or not a:
            continue
        cards.append({"question": q, "answer": a})
        if len(cards) >= count:
            break
    return cards


def clean_quiz_questions(items: list[QuizItem], count: int) -> list[dict]:
    """Drop questions that could never be answered correctly by exact comparison."""
    questions: list[dict] = []
    for it in items:
        text = it.question.strip()
        correct = it.correct_answer.strip()
        if not text or not correct:
            continue
        if it.type == "mcq":
            options = list(dict.fromkeys(o.strip() for o in it.options if o.strip()))
            match = next((o for o in options if o.lower() == correct.lower()), None)
            if len(options) < 2 or match is None:
                continue
            questions.append({"question": text, "type": "mcq", "options": options, "correctAnswer": match})
        else:
            questions.append({"question": text, "type": "short", "correctAnswer": correct})
        if len(questions) >= count:
            break
    return questions


# ============================================================================
# ROUTES - STUDY CHAT
# ============================================================================

@app.post("/api/study-chat")
def study_chat():
    """Stream an assistant reply grounded in the caller's documents.
    Body: { messages: [{ role: 'user'|'assistant', content: string }], category?: string }
    Returns: the gateway's text/event-stream body, unmodified.
    """
    user_id = authenticate()
    data = request.get_json(silent=True)
    messages = parse_chat_messages(data)
    category = Category.parse(data.get("category"))
    gateway = get_gateway()

    try:
        documents = fetch_documents(user_id, category.document_filter)
    except DocumentStoreError:
        documents = []

    context = context_for(documents, label="Document", placeholder=NO_TEXT_PLACEHOLDER)
    system_prompt = build_chat_system_prompt(category, context)
    chunks = gateway.stream_chat([{"role": "system", "content": system_prompt}, *messages])
    return Response(chunks, content_type="text/event-stream")


# ============================================================================
# ROUTES - PYQ ANALYSIS
# ============================================================================

@app.post("/api/analyze-pyq")
def analyze_pyq():
    """Topic frequency, distribution and CT-1/CT-2/End Semester predictions over the caller's PYQs.
    Returns: { success: true, data: AnalysisResult }
    """
    user_id = authenticate()
    gateway = get_gateway()

    documents = fetch_documents(user_id, Category.PYQ.value)
    if not documents:
        raise NoDocuments("No PYQ documents found. Please upload previous year question papers first.")

    context = context_for(documents, label="Question Paper")
    messages = [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": build_analysis_prompt(context)},
    ]
    result = run_extraction(gateway, messages, ANALYSIS_TOOL, AnalysisResult, "Failed to generate analysis")
    return jsonify(success=True, data=result.model_dump(by_alias=True)), 200


# ============================================================================
# ROUTES - FLASHCARDS & QUIZZES (AI GENERATION)
# ============================================================================

@app.post("/api/flashcards")
def generate_flashcards():
    """Generate flashcards from the caller's documents.
    Body: { category?: str (default 'notes'), count?: int }
    Returns: { success: true, data: { cards: [{ question, answer }] } }
    """
    user_id = authenticate()
    category, count = parse_generation_options(request.get_json(silent=True))
    gateway = get_gateway()

    documents = load_generation_documents(user_id, category)
    context = context_for(documents, placeholder=NO_TEXT_PLACEHOLDER)
    messages = [
        {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
        {"role": "user", "content": build_flashcard_prompt(context, count)},
    ]
    result = run_extraction(gateway, messages, FLASHCARD_TOOL, FlashcardSet, "Failed to generate flashcards")
    cards = clean_flashcards(result.cards, count)
    if not cards:
        raise GenerationFailed("Failed to generate flashcards")
    return jsonify(success=True, data={"cards": cards}), 200


@app.post("/api/quiz")
def generate_quiz():
    """Generate a quiz (mcq and short-answer questions) from the caller's documents.
    Body: { category?: str (default 'notes'), count?: int }
    Returns: { success: true, data: { questions: [{ question, type, options?, correctAnswer }] } }
    """
    user_id = authenticate()
    category, count = parse_generation_options(request.get_json(silent=True))
    gateway = get_gateway()

    documents = load_generation_documents(user_id, category)
    context = context_for(documents, placeholder=NO_TEXT_PLACEHOLDER)
    messages = [
        {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
        {"role": "user", "content": build_quiz_prompt(context, count)},
    ]
    result = run_extraction(gateway, messages, QUIZ_TOOL, QuizSet, "Failed to generate quiz")
    questions = clean_quiz_questions(result.questions, count)
    if not questions:
        raise GenerationFailed("Failed to generate quiz")
    return jsonify(success=True, data={"questions": questions}), 200


# ============================================================================
# ROUTES - DOCUMENTS
# ============================================================================

@app.get("/api/documents")
def list_documents():
    """List the caller's uploaded documents, optionally for one category (?category=pyq)."""
    user_id = authenticate()
    raw = request.args.get("category")
    category = Category.parse(raw) if raw else Category.GENERAL
    documents = fetch_documents(user_id, category.document_filter)
    return jsonify(
        documents=[
            {
                "filename": d["filename"],
                "file_type": d["file_type"],
                "category": d["category"],
                "has_text": bool((d["extracted_text"] or "").strip()),
                "created_at": d["created_at"].isoformat() if d["created_at"] else None,
            }
            for d in documents
        ]
    ), 200


# ============================================================================
# ROUTES - UTILITY
# ============================================================================

@app.route("/api/ping")
def ping():
    """Simple test route."""
    return jsonify({"message": "StudyAI backend is running"})


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.errorhandler(StudyAIError)
def handle_study_error(e: StudyAIError):
    return jsonify(error=e.message), e.status_code


@app.errorhandler(404)
def not_found(e):
    """Error handler for unknown routes."""
    return jsonify({"error": f"Not Found - {e}"}), 404


@app.errorhandler(Exception)
def handle_unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify(error=e.description), e.code
    logger.exception("Unhandled error")
    return jsonify(error=str(e) or "Unknown error"), 500


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    app.run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5050")),
        debug=os.getenv("FLASK_DEBUG") == "1",
    )
