"""
Default smile assessment content: the question bank and the procedure catalog.

Run directly to seed the configured database:

    python -m scripts.seed_quiz
"""

import asyncio
import logging
from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.quiz import DentalProcedure, QuizOption, QuizQuestion
from schemas.quiz import ProcedureCreate, QuizQuestionCreate

logger = logging.getLogger(__name__)


def _option(label, emoji, points):
    return {"label": label, "emoji": emoji, "points": points}


DEFAULT_QUESTIONS = [
    {
        "question": "What's your #1 smile goal right now?",
        "subtitle": "Everyone's smile journey is unique. Let's find yours!",
        "category": "goals",
        "icon": "⭐",
        "fun_fact": "Did you know? 48% of adults say a smile is the most memorable feature when meeting someone new!",
        "is_multi_select": False,
        "options": [
            _option("A brighter, whiter smile", "✨", {"whitening": 3, "veneers": 1}),
            _option("Straighter teeth", "📐", {"invisalign": 3, "veneers": 1}),
            _option("Healthier gums & teeth", "💪", {"preventive": 3, "deepCleaning": 2}),
            _option("Replace missing teeth", "🦷", {"implants": 3, "bridges": 2}),
            _option("Just feel more confident", "😊", {"cosmetic": 2, "whitening": 1, "invisalign": 1}),
        ],
    },
    {
        "question": "How would you describe your smile right now?",
        "subtitle": "Be honest, no judgment here! This helps us help you.",
        "category": "current",
        "icon": "😊",
        "fun_fact": "You're not alone! Studies show 57% of Americans cover their mouth when they laugh.",
        "is_multi_select": False,
        "options": [
            _option("I love it! Just want to maintain", "🥰", {"preventive": 3}),
            _option("It's okay, room for improvement", "🤔", {"cosmetic": 1, "whitening": 1}),
            _option("I hide it in photos", "🫣", {"cosmetic": 2, "veneers": 1, "invisalign": 1}),
            _option("I avoid smiling altogether", "😔", {"cosmetic": 3, "fullMakeover": 2}),
        ],
    },
    {
        "question": "Let's talk about tooth color...",
        "subtitle": "Coffee lovers, wine enthusiasts: we see you!",
        "category": "color",
        "icon": "☀️",
        "fun_fact": "Good news! Professional whitening can lighten teeth up to 8 shades in just one visit!",
        "is_multi_select": False,
        "options": [
            _option("Pretty white and bright", "⭐", {"preventive": 2}),
            _option("Slightly yellow/dull", "🌤️", {"whitening": 2}),
            _option("Noticeably stained", "🌥️", {"whitening": 3, "veneers": 1}),
            _option("Dark spots or discoloration", "☁️", {"whitening": 2, "veneers": 2, "bonding": 1}),
        ],
    },
    {
        "question": "How about the alignment of your teeth?",
        "subtitle": "Perfectly imperfect? Or imperfectly perfect?",
        "category": "alignment",
        "icon": "⚡",
        "fun_fact": "Clear aligners have helped over 14 million people straighten their smiles, often in under a year!",
        "is_multi_select": False,
        "options": [
            _option("Pretty straight", "✅", {"preventive": 2}),
            _option("Minor crowding or gaps", "↔️", {"invisalign": 2, "bonding": 1}),
            _option("Moderate crookedness", "〰️", {"invisalign": 3}),
            _option("Significant alignment issues", "🔀", {"invisalign": 3, "orthodontics": 2}),
        ],
    },
    {
        "question": "Any of these bothering you?",
        "subtitle": "Select all that apply. It's like a dental wishlist!",
        "category": "concerns",
        "icon": "❤️",
        "fun_fact": "Dental bonding can fix chips in just 30-60 minutes per tooth, often in a single visit!",
        "is_multi_select": True,
        "options": [
            _option("Chips or cracks", "💔", {"bonding": 2, "veneers": 2}),
            _option("Gaps between teeth", "🦷", {"invisalign": 2, "bonding": 1, "veneers": 1}),
            _option("Gummy smile", "😁", {"gumContouring": 3}),
            _option("Worn down teeth", "📉", {"crowns": 2, "veneers": 2}),
            _option("Uneven tooth shapes", "📊", {"bonding": 2, "veneers": 2}),
            _option("None of these!", "🎉", {"preventive": 2}),
        ],
    },
    {
        "question": "How are your gums feeling?",
        "subtitle": "Gum health = smile health. Let's check in!",
        "category": "health",
        "icon": "🛡️",
        "fun_fact": "Healthy gums shouldn't bleed! If yours do, don't worry: it's usually reversible with proper care.",
        "is_multi_select": False,
        "options": [
            _option("Pink, healthy, no bleeding", "💗", {"preventive": 3}),
            _option("Occasional bleeding when brushing", "🩹", {"deepCleaning": 2, "preventive": 1}),
            _option("Sensitive or puffy gums", "😬", {"deepCleaning": 3, "periodontal": 1}),
            _option("Receding gumline", "📉", {"periodontal": 3, "gumContouring": 1}),
        ],
    },
    {
        "question": "When's your ideal smile transformation?",
        "subtitle": "Big event coming up? Or taking your time?",
        "category": "timeline",
        "icon": "✨",
        "fun_fact": "Zoom whitening takes just 45 minutes! Perfect for wedding season or big presentations.",
        "is_multi_select": False,
        "options": [
            _option("ASAP, I have an event!", "🚀", {"whitening": 2, "bonding": 1}),
            _option("Within 3-6 months", "📆", {"invisalign": 1, "veneers": 1}),
            _option("Within a year", "🗓️", {"invisalign": 2, "fullMakeover": 1}),
            _option("No rush, whenever it's right", "🧘", {"preventive": 1}),
        ],
    },
    {
        "question": "Last one! How do you feel about dental visits?",
        "subtitle": "Honest answers only, we've heard it all!",
        "category": "experience",
        "icon": "❤️",
        "fun_fact": "Dental anxiety is SUPER common, and modern dentistry has amazing comfort options. You're in good hands!",
        "is_multi_select": False,
        "options": [
            _option("I actually enjoy them!", "😍", {"preventive": 2}),
            _option("They're fine, no big deal", "👍", {"preventive": 1}),
            _option("A little nervous", "😅", {"sedation": 1}),
            _option("Pretty anxious, honestly", "😰", {"sedation": 2, "anxietyFree": 2}),
        ],
    },
]

DEFAULT_PROCEDURES = [
    {"key": "whitening", "name": "Professional Teeth Whitening", "description": "Brighten your smile up to 8 shades with our safe, effective whitening treatments.", "timeframe": "1 visit (45 min) or 2 weeks at home", "icon": "✨", "color_gradient": "from-yellow-400 to-amber-500", "category": "cosmetic"},
    {"key": "invisalign", "name": "Invisalign Clear Aligners", "description": "Straighten your teeth discreetly with nearly invisible aligners. No metal brackets!", "timeframe": "6-18 months typical", "icon": "📐", "color_gradient": "from-blue-400 to-cyan-500", "category": "orthodontic"},
    {"key": "veneers", "name": "Porcelain Veneers", "description": "Custom-crafted shells that transform the color, shape, and size of your teeth.", "timeframe": "2-3 visits over 2-4 weeks", "icon": "💎", "color_gradient": "from-purple-400 to-pink-500", "category": "cosmetic"},
    {"key": "bonding", "name": "Dental Bonding", "description": "Quick, affordable fix for chips, gaps, and minor imperfections.", "timeframe": "1 visit (30-60 min per tooth)", "icon": "🔧", "color_gradient": "from-green-400 to-emerald-500", "category": "cosmetic"},
    {"key": "preventive", "name": "Preventive Care Plan", "description": "Keep your healthy smile shining with regular cleanings and checkups.", "timeframe": "Every 6 months", "icon": "🛡️", "color_gradient": "from-teal-400 to-cyan-500", "category": "preventive"},
    {"key": "deepCleaning", "name": "Deep Cleaning (Scaling)", "description": "Restore gum health with a thorough cleaning below the gumline.", "timeframe": "1-2 visits", "icon": "🧹", "color_gradient": "from-indigo-400 to-blue-500", "category": "preventive"},
    {"key": "implants", "name": "Dental Implants", "description": "Permanent, natural-looking replacement for missing teeth.", "timeframe": "3-6 months total process", "icon": "🦷", "color_gradient": "from-slate-400 to-zinc-500", "category": "restorative"},
    {"key": "crowns", "name": "Dental Crowns", "description": "Restore damaged teeth with custom-fitted, natural-looking caps.", "timeframe": "2 visits over 2 weeks", "icon": "👑", "color_gradient": "from-amber-400 to-orange-500", "category": "restorative"},
    {"key": "gumContouring", "name": "Gum Contouring", "description": "Reshape your gumline for a more balanced, beautiful smile.", "timeframe": "1 visit", "icon": "✂️", "color_gradient": "from-rose-400 to-pink-500", "category": "cosmetic"},
    {"key": "cosmetic", "name": "Smile Makeover Consultation", "description": "Comprehensive evaluation to design your perfect smile transformation.", "timeframe": "1 consultation visit", "icon": "🎨", "color_gradient": "from-violet-400 to-purple-500", "category": "cosmetic"},
    {"key": "sedation", "name": "Sedation Dentistry", "description": "Relaxation options for a comfortable, anxiety-free experience.", "timeframe": "Available with any procedure", "icon": "😌", "color_gradient": "from-sky-400 to-blue-500", "category": "comfort"},
    {"key": "anxietyFree", "name": "Anxiety-Free Experience", "description": "We specialize in making nervous patients feel at ease. You're in caring hands!", "timeframe": "Every visit", "icon": "🤗", "color_gradient": "from-pink-400 to-rose-500", "category": "comfort"},
]


def build_questions():
    """Default questions as ORM objects, options attached and validated."""
    questions = []
    for q_index, raw in enumerate(DEFAULT_QUESTIONS):
        data = QuizQuestionCreate(
            **raw,
            sort_order=q_index,
        )
        question = QuizQuestion(**data.model_dump(exclude={"options"}))
        question.options = [
            QuizOption(**option.model_dump(exclude={"sort_order"}), sort_order=o_index)
            for o_index, option in enumerate(data.options)
        ]
        questions.append(question)
    return questions


def build_procedures():
    return [
        DentalProcedure(**ProcedureCreate(**raw, sort_order=index).model_dump())
        for index, raw in enumerate(DEFAULT_PROCEDURES)
    ]


async def seed_quiz(session: AsyncSession) -> Dict[str, int]:
    """
    Seed whichever of the question bank and procedure catalog is empty.

    Both tables go in one transaction. When another process seeds the same
    database concurrently, the unique procedure key makes the later commit
    fail; that commit is rolled back whole and nothing is reported as seeded.
    Questions have no natural key, so a race on a database whose catalog is
    already populated is not caught. Multi-worker deployments leave
    SEED_ON_STARTUP off and run this module once.
    """
    seeded = {"questions": 0, "procedures": 0}

    question_count = (await session.execute(select(func.count()).select_from(QuizQuestion))).scalar_one()
    procedure_count = (await session.execute(select(func.count()).select_from(DentalProcedure))).scalar_one()

    if question_count == 0:
        questions = build_questions()
        session.add_all(questions)
        seeded["questions"] = len(questions)

    if procedure_count == 0:
        procedures = build_procedures()
        session.add_all(procedures)
        seeded["procedures"] = len(procedures)

    if not (seeded["questions"] or seeded["procedures"]):
        return seeded

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Quiz content was seeded by another process, skipping")
        return {"questions": 0, "procedures": 0}

    logger.info(f"Seeded {seeded['questions']} quiz questions and {seeded['procedures']} procedures")
    return seeded


async def main():
    from core.database import AsyncSessionLocal, init_db

    await init_db()
    async with AsyncSessionLocal() as session:
        seeded = await seed_quiz(session)
    print(f"Questions seeded: {seeded['questions']}")
    print(f"Procedures seeded: {seeded['procedures']}")


if __name__ == "__main__":
    asyncio.run(main())
