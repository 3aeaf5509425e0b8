from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from sqlalchemy import func, select

from lottomoji.db.engine import get_sessionmaker, make_engine
from lottomoji.draw.engine import SettlementEngine
from lottomoji.draw.window import WindowKey
from lottomoji.models import Base, DrawLock, LockState, SettlementResult, Ticket

from draw_fixtures import BALLOON, PALETTE, RAINBOW, STAR, UNICORN

ATTEMPTS = 6


class ConcurrentDrawTests(unittest.TestCase):
    """Several attempts racing for one window against a shared SQLite file."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self.tmpdir.name) / "draws.db"
        self.engine = make_engine(f"sqlite+pysqlite:///{db_path}")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        with self.Session.begin() as session:
            session.add_all(
                [
                    Ticket(numbers=[STAR, BALLOON, PALETTE, RAINBOW], owner_key="alice"),
                    Ticket(numbers=[BALLOON, PALETTE, STAR, UNICORN], owner_key="bob"),
                ]
            )
        self.window = WindowKey.current()

    def tearDown(self) -> None:
        self.engine.dispose()
        self.tmpdir.cleanup()

    def test_one_result_per_window(self):
        barrier = threading.Barrier(ATTEMPTS)
        outcomes = []
        errors = []
        guard = threading.Lock()

        def attempt():
            engine = SettlementEngine(self.Session)
            barrier.wait()
            try:
                outcome = engine.run_draw(self.window)
            except Exception as exc:  # pragma: no cover - surfaced below
                with guard:
                    errors.append(exc)
                return
            with guard:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt) for _ in range(ATTEMPTS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        self.assertEqual(errors, [])
        self.assertEqual(len(outcomes), ATTEMPTS)

        fresh = [o for o in outcomes if o.success and not o.already_settled]
        self.assertEqual(len(fresh), 1)
        winner = fresh[0]
        for outcome in outcomes:
            if outcome is winner:
                continue
            self.assertTrue(
                outcome.busy or outcome.already_settled,
                f"unexpected outcome {outcome}",
            )
            if outcome.already_settled:
                self.assertEqual(outcome.result_id, winner.result_id)

        with self.Session() as session:
            results = session.scalars(select(SettlementResult)).all()
            self.assertEqual(len(results), 1)
            self.assertEqual(results[0].id, winner.result_id)
            self.assertEqual(
                session.scalar(select(func.count()).select_from(DrawLock)), 1
            )
            lock = session.get(DrawLock, str(self.window))
            self.assertEqual(lock.state, LockState.COMPLETED.value)
            self.assertEqual(lock.result_id, winner.result_id)


if __name__ == "__main__":
    unittest.main()
