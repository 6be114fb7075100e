"""
Seeds the StudyAI database with sample documents for local development.

Usage:
  python studyai-db/seed_studyai_db.py <firebase-uid>

Documents are owned by the given uid, so sign in as that user to see them.
"""

import os
import sys

import psycopg2

documents = [
    (
        "attention_is_all_you_need.pdf", "pdf", "research",
        "We propose the Transformer, a model architecture based solely on attention mechanisms, "
        "dispensing with recurrence and convolutions entirely. Experiments on two machine translation "
        "tasks show these models to be superior in quality while being more parallelizable.",
    ),
    (
        "os_unit3_notes.txt", "text", "notes",
        "Deadlock requires four conditions: mutual exclusion, hold and wait, no preemption and circular wait. "
        "The Banker's algorithm avoids deadlock by checking for a safe state before granting a request. "
        "Paging divides memory into fixed-size frames; the page table maps pages to frames.",
    ),
    (
        "os_ct1_2023.pdf", "pdf", "pyq",
        "1. Explain the four necessary conditions for deadlock. (5)\n"
        "2. Differentiate paging and segmentation. (5)\n"
        "3. Apply the Banker's algorithm to the given allocation matrix. (10)",
    ),
    (
        "os_endsem_2023.pdf", "pdf", "pyq",
        "1. Describe demand paging and page replacement (FIFO, LRU, Optimal). (10)\n"
        "2. Explain deadlock avoidance using the Banker's algorithm. (10)\n"
        "3. Compare process scheduling algorithms: FCFS, SJF, Round Robin. (10)",
    ),
    ("scanned_page.png", "image", "general", None),
]


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    user_id = sys.argv[1]

    connection = psycopg2.connect(os.getenv("DATABASE_URL"))
    cursor = connection.cursor()
    try:
        cursor.executemany(
            """
            INSERT INTO documents (user_id, filename, file_type, category, extracted_text)
            VALUES (%s, %s, %s, %s, %s);
            """,
            [(user_id, *doc) for doc in documents],
        )
        connection.commit()
    finally:
        cursor.close()
        connection.close()
    print(f"Inserted {len(documents)} sample documents for {user_id}.")


if __name__ == "__main__":
    main()
