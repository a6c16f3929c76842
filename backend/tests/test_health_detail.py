from fastapi.testclient import TestClient

from backend.main import app


def test_health():
    client = TestClient(app)
    res = client.get('/health')
    assert res.status_code == 200
    assert res.json() == {'status': 'healthy'}


def test_health_detail_shape():
    client = TestClient(app)
    res = client.get('/health/detail')
    assert res.status_code == 200
    body = res.json()
    assert body.get('status') in ('healthy', 'degraded')
    assert 'ok' in body
    assert body.get('engine_version')
    checks = body.get('checks') or {}
    assert 'vocabulary' in checks
    assert 'segment_store' in checks
    assert 'story_backend' in checks
    assert checks['vocabulary']['ok'] is True
