#!/usr/bin/env python3
"""初期の質問票 (v1) を作成して公開するスクリプト"""
import sys
sys.path.insert(0, '/app')

from app.core.actor import Actor
from app.core.database import SessionLocal
from app.models.profile import Profile
from app.services import questionnaire_service

SECTIONS = [
    {
        "name": "Playing Surface",
        "questions": [
            {"label": "Surface Type", "question_type": "list", "options": ["Grass", "Synthetic", "Hard court", "Clay"]},
            {"label": "Number of Courts", "question_type": "number"},
            {"label": "Surface Condition", "question_type": "radio", "options": ["Good", "Fair", "Poor"]},
        ],
    },
    {
        "name": "Amenities",
        "questions": [
            {"label": "Lighting", "question_type": "radio", "options": ["Yes", "No"]},
            {"label": "Facilities Available", "question_type": "checkbox",
             "options": ["Toilets", "Change rooms", "Canteen", "Parking", "Seating"]},
            {"label": "Accessibility Notes", "question_type": "string"},
        ],
    },
]


def main():
    db = SessionLocal()
    try:
        if questionnaire_service.get_published_version(db):
            print("公開中の質問票が既にあります")
            return

        owner = db.query(Profile).filter(Profile.role == "super_admin").first()
        if owner is None:
            print("super_adminがいません。先に create_admin.py を実行してください")
            return
        actor = Actor(user_id=owner.id, email=owner.email, role=owner.role, full_name=owner.full_name)

        version = questionnaire_service.create_version(db, actor, "Facility Audit", "Initial audit questionnaire")
        for s in SECTIONS:
            section = questionnaire_service.add_section(db, version.id, s["name"])
            for q in s["questions"]:
                questionnaire_service.add_question(
                    db,
                    section.id,
                    label=q["label"],
                    question_type=q["question_type"],
                    options=q.get("options"),
                )
        questionnaire_service.publish_version(db, actor, version.id)
        print(f"質問票 v{version.version_number} を公開しました")
    finally:
        db.close()


if __name__ == "__main__":
    main()
