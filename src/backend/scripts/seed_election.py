"""
Seed a demo election for local development.

Creates a handful of voters, two positions whose voting window is open
right now and one approved candidate pair per position.

Run from src/backend with: python -m scripts.seed_election
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from db.session import get_session_maker, init_db
from models.position import CandidateStatus, Position
from repositories.candidate_repository import CandidateRepository
from repositories.position_repository import PositionRepository
from repositories.user_repository import UserRepository
from repositories.voter_repository import VoterRepository

SEED_VOTERS = [
    {"reg_no": "2024/BCS/001", "name": "Amina Nakato", "email": "amina@example.com", "phone": "0701234567"},
    {"reg_no": "2024/BCS/002", "name": "Brian Okello", "email": "brian@example.com"},
    {"reg_no": "2024/BBA/003", "name": "Carol Auma", "phone": "0772345678"},
    {"reg_no": "2024/BEE/004", "name": "David Mugisha", "email": "david@example.com", "phone": "0783456789"},
]

SEED_POSITIONS = [
    {
        "name": "Guild President",
        "candidates": [("Esther Achieng", "BSc Computer Science"), ("Frank Ssali", "BSc Electrical Engineering")],
    },
    {
        "name": "Guild Secretary",
        "candidates": [("Grace Apio", "Bachelor of Business Administration"), ("Henry Kato", "BA Education")],
    },
]


async def seed_election() -> None:
    """Populate an empty database with a demo election."""
    await init_db()
    session_maker = get_session_maker()

    async with session_maker() as session:
        existing = await session.execute(select(Position).limit(1))
        if existing.scalar_one_or_none():
            print("Positions already exist in database. Skipping seed.")
            return

        created, _ = await VoterRepository(session).upsert(SEED_VOTERS)
        print(f"Imported {created} voters")

        now = datetime.now(timezone.utc)
        positions = PositionRepository(session)
        candidates = CandidateRepository(session)
        users = UserRepository(session)

        for index, position_data in enumerate(SEED_POSITIONS):
            position = await positions.create(
                name=position_data["name"],
                seats=1,
                nomination_opens_at=now - timedelta(days=7),
                nomination_closes_at=now - timedelta(days=1),
                voting_opens_at=now - timedelta(hours=1),
                voting_closes_at=now + timedelta(hours=8),
            )

            for name, program in position_data["candidates"]:
                email = f"{name.split()[0].lower()}.{index}@example.com"
                user = await users.create(email=email, name=name, program=program)
                candidate = await candidates.create(
                    position_id=position.id,
                    user_id=user.id,
                    name=user.name,
                    program=program,
                )
                await candidates.set_status(candidate, CandidateStatus.APPROVED)

            print(f"Created position: {position.name} (voting until {position.voting_closes_at:%H:%M} UTC)")

        await session.commit()
        print(f"\nCreated {len(SEED_POSITIONS)} positions successfully!")


if __name__ == "__main__":
    asyncio.run(seed_election())
