"""
Celery タスクのテスト（ブローカーなしで同期実行）
"""
from app.schemas.presence import OnlineStatus
from app.workers import tasks
from app.workers.celery_app import celery_app
from tests.conftest import FakeRedis


def test_routes_and_schedule():
    routes = celery_app.conf.task_routes
    assert routes["app.workers.tasks.import_quotes_task"]["queue"] == "import_queue"
    assert routes["app.workers.tasks.reconcile_presence_task"]["queue"] == "presence"
    entry = celery_app.conf.beat_schedule["reconcile-presence-every-minute"]
    assert entry["task"] == "app.workers.tasks.reconcile_presence_task"


def test_import_missing_file(tmp_path):
    result = tasks.import_quotes_task(str(tmp_path / "absent.csv"))
    assert result["status"] == "error"


def test_reconcile_presence(monkeypatch):
    redis = FakeRedis()
    closed = []

    async def _close():
        closed.append(True)

    for user_id in ("u1", "u2"):
        status = OnlineStatus(user_id=user_id, user_email=f"{user_id}@x.io", is_online=True, last_seen=0)
        redis._values[f"presence:user:{user_id}"] = (status.to_json(), None)
        redis._sets.setdefault("presence:online", set()).add(user_id)
    # u2 のキーだけ期限切れ
    del redis._values["presence:user:u2"]

    monkeypatch.setattr(tasks, "get_redis", lambda: redis)
    monkeypatch.setattr(tasks, "close_redis", _close)

    result = tasks.reconcile_presence_task()
    assert result == {"status": "completed", "online": 1}
    assert redis._sets["presence:online"] == {"u1"}
    assert closed == [True]
