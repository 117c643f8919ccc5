"""Seed the database with a starter catalogue and demo accounts."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import AchievementRow, DiagnosticQuestionRow, LearnerRow, LearningPathRow, MissionRow


logger = logging.getLogger(__name__)


QUESTIONS = [
    ("mathematics", "A town of 360 people grows 5% a year. What is its population after 2 years?",
     ["396", "378", "390", "396.9"], 3, 2),
    ("mathematics", "What is 3/4 of 120?", ["80", "90", "100", "60"], 1, 1),
    ("languages", "In 'He bought an INTERESTING book', what is the role of the capitalised word?",
     ["Subject", "Direct object", "Adjective modifying the noun", "Subject complement"], 2, 2),
    ("languages", "Which word is a synonym of 'brave'?", ["Timid", "Courageous", "Tired", "Quiet"], 1, 1),
    ("sciences", "Which gas do plants absorb during photosynthesis?",
     ["Oxygen", "Nitrogen", "Carbon dioxide", "Hydrogen"], 2, 1),
    ("sciences", "What is the boiling point of water at sea level?", ["90 °C", "100 °C", "110 °C", "120 °C"], 1, 1),
    ("history", "In which year did Brazil declare independence?", ["1500", "1808", "1822", "1889"], 2, 1),
    ("history", "Which civilisation built the city of Machu Picchu?", ["Aztec", "Maya", "Inca", "Olmec"], 2, 2),
    ("geography", "What is the capital of Piauí?", ["Fortaleza", "Teresina", "São Luís", "Parnaíba"], 1, 1),
    ("geography", "Which is the longest river in South America?", ["Paraná", "São Francisco", "Amazon", "Orinoco"], 2, 1),
    ("arts", "Which primary colours mix to make green?", ["Red and blue", "Blue and yellow", "Red and yellow", "White and black"], 1, 1),
    ("arts", "Who painted the Mona Lisa?", ["Michelangelo", "Raphael", "Leonardo da Vinci", "Donatello"], 2, 1),
]

PATHS = [
    # (title, area, difficulty, required level)
    ("Numbers of Teresina", "mathematics", 1, 1),
    ("Scrolls of Parnaíba", "languages", 1, 1),
    ("Chronicles of Oeiras", "history", 1, 1),
]

MISSIONS = [
    # (path index, title, difficulty, xp reward, steps)
    (0, "Market Day Sums", 1, 50, [
        {"kind": "multiple_choice", "prompt": "7 + 8 = ?", "options": ["14", "15", "16"], "correct_option_index": 1},
        {"kind": "multiple_choice", "prompt": "12 - 5 = ?", "options": ["7", "6", "8"], "correct_option_index": 0},
    ]),
    (0, "The Merchant's Fractions", 2, 75, [
        {"kind": "multiple_choice", "prompt": "1/2 + 1/4 = ?", "options": ["3/4", "2/6", "1/8"], "correct_option_index": 0},
        {"kind": "free_text", "prompt": "Explain how you found a common denominator.", "expected_keywords": ["denominator"]},
    ]),
    (0, "Geometry of the Fortress", 3, 100, [
        {"kind": "multiple_choice", "prompt": "Sum of the angles of a triangle?", "options": ["90°", "180°", "360°"], "correct_option_index": 1},
    ]),
    (1, "The Herald's Letter", 1, 50, [
        {"kind": "free_text", "prompt": "Write a short greeting to the village herald."},
    ]),
    (1, "Riddles of the Scribe", 2, 75, [
        {"kind": "multiple_choice", "prompt": "Opposite of 'ancient'?", "options": ["Old", "Modern", "Antique"], "correct_option_index": 1},
    ]),
    (2, "The First Capital", 1, 50, [
        {"kind": "multiple_choice", "prompt": "Oeiras was the first capital of which state?", "options": ["Piauí", "Ceará", "Maranhão"], "correct_option_index": 0},
    ]),
    (2, "Roads of the Cattle Drivers", 2, 75, [
        {"kind": "free_text", "prompt": "Why did cattle ranching shape the settlement of Piauí?", "expected_keywords": ["cattle"]},
    ]),
]

ACHIEVEMENTS = [
    # (title, description, area, criteria); paths are referenced by seed order
    ("Mathematical Sage", "Complete 5 mathematics missions with a perfect score", "mathematics",
     {"area": "mathematics", "completedMissions": 5, "minScore": 100}),
    ("Poet Laureate", "Complete 3 language missions scoring 90 or more", "languages",
     {"area": "languages", "completedMissions": 3, "minScore": 90}),
    ("Fearless Explorer", "Visit every city on the map", None, {"visitedLocations": [1, 2, 3, 4]}),
    ("Historian", "Complete the Chronicles of Oeiras path", "history", {"pathId": 3, "completed": True}),
    ("First Quest", "Complete your first mission", None, {"completedMissions": 1}),
    ("Flawless", "Score 100 on any mission", None, {"minScore": 100}),
    ("Master of Knowledge", "Reach level 10 with a completed mission in every area", None, {"minLevel": 10, "allAreas": True}),
]


def is_seeded(db: Session) -> bool:
    return (db.scalar(select(func.count()).select_from(DiagnosticQuestionRow)) or 0) > 0


def seed_catalogue(db: Session) -> None:
    for position, (area, prompt, options, correct, difficulty) in enumerate(QUESTIONS):
        db.add(DiagnosticQuestionRow(
            area=area, prompt=prompt, options=options, correct_option_index=correct,
            difficulty=difficulty, position=position,
        ))

    path_rows = [LearningPathRow(title=t, area=a, difficulty=d, required_level=lvl) for t, a, d, lvl in PATHS]
    db.add_all(path_rows)
    db.flush()

    sequence_by_path: dict = {}
    for path_index, title, difficulty, xp_reward, steps in MISSIONS:
        path = path_rows[path_index]
        sequence_by_path[path.id] = sequence_by_path.get(path.id, 0) + 1
        db.add(MissionRow(
            title=title, area=path.area, difficulty=difficulty, xp_reward=xp_reward,
            path_id=path.id, steps=steps, sequence=sequence_by_path[path.id],
        ))

    for title, description, area, criteria in ACHIEVEMENTS:
        db.add(AchievementRow(title=title, description=description, area=area, criteria=criteria))
    db.commit()
    logger.info("Seeded %d questions, %d missions, %d achievements", len(QUESTIONS), len(MISSIONS), len(ACHIEVEMENTS))


def ensure_learner(db: Session, username: str, role: str = "student") -> LearnerRow:
    row = db.scalars(select(LearnerRow).where(LearnerRow.username == username)).first()
    if row is None:
        row = LearnerRow(username=username, role=role)
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def seed_all(db: Session) -> None:
    if not is_seeded(db):
        seed_catalogue(db)
    ensure_learner(db, "student", "student")
    ensure_learner(db, "teacher", "teacher")
