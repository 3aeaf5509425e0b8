from datetime import datetime, timedelta, timezone

from lottomoji.db.engine import get_sessionmaker, make_engine
from lottomoji.draw.symbols import SymbolPool
from lottomoji.models import Base, Ticket
from lottomoji.workflows import submit_ticket


def main() -> None:
    """Reset the development database and add sample tickets."""
    engine = make_engine()

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    pool = SymbolPool()
    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        # Hand-picked tickets covering every tier against 🌟 🎈 🎨 🌈.
        submit_ticket(session, "wallet_alice", ["🌟", "🎈", "🎨", "🌈"], pool=pool)
        submit_ticket(session, "wallet_bob", ["🌈", "🎨", "🎈", "🌟"], pool=pool)
        submit_ticket(session, "wallet_carol", ["🌟", "🎈", "🎨", "🦄"], pool=pool)
        submit_ticket(session, "wallet_dave", ["🎈", "🎨", "🌟", "🦄"], pool=pool)
        submit_ticket(session, "anonymous", ["🦄", "🦋", "🐬", "🌸"], pool=pool)

        # Random tickets from a handful of players.
        for idx in range(20):
            submit_ticket(session, f"wallet_{idx % 5:02d}", pool.draw(), pool=pool)

        # Tickets old enough for the cleanup job.
        for idx in range(3):
            session.add(
                Ticket(
                    numbers=pool.draw(),
                    owner_key="wallet_old",
                    created_at=now - timedelta(days=10 + idx),
                )
            )

    print("Seeded development database.")


if __name__ == "__main__":
    main()
