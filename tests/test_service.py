"""
LeaderboardService unit tests
"""

import asyncio
import json

import pytest

from elo_board.defaults import DEFAULT_LEADERBOARD
from elo_board.errors import InternalError, InvalidRequest, ServiceNotReady, SnapshotError
from elo_board.ledger import Ledger, replay
from elo_board.service import LeaderboardService
from elo_board.snapshot import SnapshotStore

A = "dalle_desc_25"
B = "dalle_desc_50"
C = "sd35_desc_250"


def make_service(tmp_path) -> LeaderboardService:
    return LeaderboardService(
        Ledger(tmp_path / "logs.log"),
        SnapshotStore(tmp_path / "leaderboard.json"),
    )


@pytest.fixture
def service(tmp_path):
    svc = make_service(tmp_path)
    svc.initialize()
    return svc


class TestStartup:
    """Startup and recovery"""

    def test_first_boot_writes_defaults(self, tmp_path):
        svc = make_service(tmp_path)
        svc.initialize()

        assert svc.ready
        assert json.loads((tmp_path / "leaderboard.json").read_text()) == DEFAULT_LEADERBOARD
        assert (tmp_path / "logs.log").read_text() == ""

    def test_snapshot_adopted_verbatim(self, tmp_path):
        (tmp_path / "leaderboard.json").write_text(json.dumps({A: 1100, "retired_model": 950}))
        svc = make_service(tmp_path)
        svc.initialize()

        assert asyncio.run(svc.get()) == {A: 1100, "retired_model": 950}

    def test_existing_ledger_loaded_without_replay(self, tmp_path):
        (tmp_path / "logs.log").write_text(f"[2025-01-01T00:00:00.000Z] /vote {A} > {B} (ctx)\n")
        svc = make_service(tmp_path)
        svc.initialize()

        assert svc.ledger.entries == [f"[2025-01-01T00:00:00.000Z] /vote {A} > {B} (ctx)"]
        assert asyncio.run(svc.get())[A] == 1000

    def test_malformed_snapshot_is_fatal(self, tmp_path):
        (tmp_path / "leaderboard.json").write_text("{broken")
        svc = make_service(tmp_path)

        with pytest.raises(SnapshotError):
            svc.initialize()
        assert not svc.ready

    @pytest.mark.asyncio
    async def test_operations_rejected_before_initialize(self, tmp_path):
        svc = make_service(tmp_path)

        with pytest.raises(ServiceNotReady):
            await svc.get()
        with pytest.raises(ServiceNotReady):
            await svc.vote(A, B, "ctx")


class TestVote:
    """Voting"""

    @pytest.mark.asyncio
    async def test_vote_scenario(self, service):
        leaderboard = await service.vote(A, B, "ctx")

        assert leaderboard[A] == 1016
        assert leaderboard[B] == 984
        assert json.loads(service.snapshot.path.read_text()) == leaderboard
        assert service.ledger.last_entry.endswith(f"/vote {A} > {B} (ctx)")

    @pytest.mark.asyncio
    async def test_vote_returns_copy(self, service):
        leaderboard = await service.vote(A, B, "ctx")
        leaderboard[A] = 0

        assert (await service.get())[A] == 1016

    @pytest.mark.asyncio
    async def test_unknown_entity_leaves_state_unchanged(self, service):
        before = await service.get()

        with pytest.raises(InvalidRequest) as excinfo:
            await service.vote("nope", B, "ctx")

        assert excinfo.value.message == "Invalid model names"
        assert excinfo.value.status_code == 400
        assert service.ledger.last_entry.endswith("/vote - Error: Invalid model names (nope, dalle_desc_50)")
        assert await service.get() == before
        assert json.loads(service.snapshot.path.read_text()) == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("winner,loser,obj", [(A, B, None), (A, B, ""), (None, B, "ctx"), (A, "", "ctx")])
    async def test_missing_parameters(self, service, winner, loser, obj):
        with pytest.raises(InvalidRequest, match="Missing required parameters"):
            await service.vote(winner, loser, obj)
        assert service.ledger.last_entry.endswith("/vote - Error: Missing required parameters")

    @pytest.mark.asyncio
    async def test_self_vote_is_accepted(self, service):
        leaderboard = await service.vote(A, A, "ctx")

        # the loser side reads the rating the winner side just wrote
        assert leaderboard[A] == 1000
        assert sum(leaderboard.values()) == sum(DEFAULT_LEADERBOARD.values())
        assert replay(service.ledger.entries, DEFAULT_LEADERBOARD) == leaderboard

    @pytest.mark.asyncio
    async def test_failed_ledger_write_leaves_ratings(self, service, monkeypatch):
        def broken_append(message):
            raise OSError("disk full")

        monkeypatch.setattr(service.ledger, "append", broken_append)

        with pytest.raises(InternalError, match="Internal server error"):
            await service.vote(A, B, "ctx")
        assert service.snapshot.load()[A] == 1000
        monkeypatch.undo()
        assert (await service.get())[A] == 1000

    @pytest.mark.asyncio
    async def test_concurrent_votes_are_serialized(self, service):
        pairs = [(A, B), (B, C), (C, A), (A, C)] * 10

        await asyncio.gather(*(service.vote(w, l, "ctx") for w, l in pairs))

        current = await service.get()
        assert replay(service.ledger.entries, DEFAULT_LEADERBOARD) == current
        assert service.snapshot.load() == current


class TestReads:
    """Read-only operations"""

    @pytest.mark.asyncio
    async def test_get_is_idempotent(self, service):
        first = await service.get()
        second = await service.get()

        assert first == second == DEFAULT_LEADERBOARD
        assert len(service.ledger) == 2

    @pytest.mark.asyncio
    async def test_status(self, service):
        await service.vote(A, B, "ctx")

        status = await service.status()

        assert status["total_requests"] == 1
        assert status["total_models"] == len(DEFAULT_LEADERBOARD)
        assert status["last_request"].endswith(f"/vote {A} > {B} (ctx)")
        assert status["size_mb_logs"] == 0.0
        assert service.ledger.last_entry.endswith("/admin/status")

    @pytest.mark.asyncio
    async def test_status_on_empty_ledger(self, service):
        status = await service.status()

        assert status["total_requests"] == 0
        assert status["last_request"] is None

    @pytest.mark.asyncio
    async def test_get_logs_in_append_order(self, service):
        await service.get()
        await service.vote(A, B, "ctx")

        logs = await service.get_logs()

        assert [line.split("] ", 1)[1] for line in logs] == ["/get", f"/vote {A} > {B} (ctx)"]


class TestAdmin:
    """Administrative operations"""

    @pytest.mark.asyncio
    async def test_reset_leaderboard(self, service):
        await service.vote(A, B, "ctx")
        await service.vote(C, A, "ctx")

        message = await service.reset_leaderboard()

        assert message == "Leaderboard reset successfully"
        assert await service.get() == DEFAULT_LEADERBOARD
        assert service.snapshot.load() == DEFAULT_LEADERBOARD

    @pytest.mark.asyncio
    async def test_reset_leaderboard_restores_entity_set(self, tmp_path):
        (tmp_path / "leaderboard.json").write_text(json.dumps({A: 1100, "retired_model": 950}))
        svc = make_service(tmp_path)
        svc.initialize()

        await svc.reset_leaderboard()

        assert await svc.get() == DEFAULT_LEADERBOARD

    @pytest.mark.asyncio
    async def test_reset_logs(self, service):
        await service.get()
        await service.vote(A, B, "ctx")

        message = await service.reset_logs()
        logs = await service.get_logs()

        assert message == "Logs reset successfully"
        assert len(logs) == 1
        assert logs[0].endswith("/admin/reset-logs")
        assert service.ledger.path.read_text().count("\n") == 2


class TestDurability:
    """Snapshot round-trip and ledger reconstruction"""

    @pytest.mark.asyncio
    async def test_restart_round_trip(self, tmp_path, service):
        await service.vote(A, B, "ctx")
        await service.vote(C, B, "ctx")
        before = await service.get()

        restarted = make_service(tmp_path)
        restarted.initialize()

        assert await restarted.get() == before
        assert restarted.ledger.entries[: len(service.ledger)] == service.ledger.entries

    @pytest.mark.asyncio
    async def test_ledger_reconstructs_leaderboard(self, service):
        await service.vote(A, B, "first")
        await service.vote(B, C, "second")
        with pytest.raises(InvalidRequest):
            await service.vote(A, "ghost", "third")
        await service.reset_leaderboard()
        await service.vote(C, A, "fourth")
        await service.vote(C, B, "fifth")

        assert replay(service.ledger.entries, DEFAULT_LEADERBOARD) == await service.get()

    def test_record_error_is_best_effort(self, service, monkeypatch, caplog):
        def broken_append(message):
            raise OSError("read-only file system")

        monkeypatch.setattr(service.ledger, "append", broken_append)

        service.record_error("/get", "Unauthorized - Missing or invalid authorization header")

        assert "Could not write ledger entry" in caplog.text

    @pytest.mark.asyncio
    async def test_line_breaks_in_object_stay_in_one_entry(self, tmp_path, service):
        forged = f"x)\n[2025-01-01T00:00:00.000Z] /vote {B} > {A} (y\r"
        live = await service.vote(A, B, forged)
        in_memory = service.ledger.entries

        restarted = make_service(tmp_path)
        restarted.initialize()

        assert restarted.ledger.entries == in_memory
        assert len(in_memory) == 1
        assert replay(restarted.ledger.entries, DEFAULT_LEADERBOARD) == live

    @pytest.mark.asyncio
    async def test_failed_snapshot_write_is_internal_error(self, service, monkeypatch):
        def broken_save(ratings):
            raise OSError("disk full")

        monkeypatch.setattr(service.snapshot, "save", broken_save)

        with pytest.raises(InternalError):
            await service.vote(A, B, "ctx")
        assert service.ledger.last_entry.endswith("/vote - Error: disk full")
