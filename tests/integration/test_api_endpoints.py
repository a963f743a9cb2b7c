from fastapi.testclient import TestClient
import main as ai_main
from tests.fixtures.mock_openai import MOCK_MATH_WORKSHEET, MOCK_QUIZ, auth_error, timeout_error


def test_health_endpoint():
    client = TestClient(ai_main.app)
    r = client.get('/health')
    assert r.status_code == 200
    data = r.json()
    assert data.get('status') == 'ok'
    assert 'X-Request-ID' in r.headers


def test_request_id_is_echoed():
    client = TestClient(ai_main.app)
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.headers['X-Request-ID'] == 'abc123'


def test_ready_without_key(monkeypatch):
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)
    client = TestClient(ai_main.app)
    r = client.get('/ready')
    assert r.status_code == 200
    data = r.json()
    assert data['services']['templates'] == 'ok'
    assert data['services']['openai'].startswith('warn')


def test_voice_analyze():
    client = TestClient(ai_main.app)
    r = client.post('/voice/analyze', json={'transcript': 'Make a quiz on fractions for 5th grade'})
    assert r.status_code == 200
    data = r.json()
    assert data['success'] is True
    analysis = data['analysis']
    assert analysis['category'] == 'quiz'
    assert analysis['resourceType'] == 'quiz'
    assert analysis['slots']['grade'] == '5th Grade'
    assert analysis['slots']['subject'] == 'Math'


def test_generate_worksheet(install_fake_openai):
    calls = install_fake_openai(MOCK_MATH_WORKSHEET)
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions', 'questionCount': 5}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body['resourceType'] == 'worksheet'
    assert len(body['problems']) == 5
    assert body['problems'][4]['problem'].endswith('(variation 2)')
    assert len(calls.calls) == 1


def test_generate_invalid_request_lists_fields(install_fake_openai):
    calls = install_fake_openai(MOCK_MATH_WORKSHEET)
    client = TestClient(ai_main.app)
    r = client.post('/api/generate', json={'resourceType': 'quiz', 'questionCount': 0})
    assert r.status_code == 400
    body = r.json()
    assert body['success'] is False
    fields = {f['field'] for f in body['fields']}
    assert {'subject', 'gradeLevel', 'topicArea', 'questionCount'} <= fields
    assert calls.calls == []


def test_generate_without_key_is_503(monkeypatch):
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions'}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 503
    body = r.json()
    assert body['reason'] == 'missing_credentials'
    assert 'not configured' in body['user_message']


def test_generate_rejected_key_is_403(install_fake_openai):
    install_fake_openai(auth_error())
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions'}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 403
    assert r.json()['reason'] == 'rejected_credentials'


def test_generate_timeout_is_504(install_fake_openai):
    install_fake_openai(timeout_error())
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions'}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 504
    assert r.json()['user_message'] == 'Generation failed, please try again.'


def test_generate_malformed_output_keeps_raw(install_fake_openai):
    install_fake_openai('not json at all')
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions'}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 500
    body = r.json()
    assert body['error_kind'] == 'malformed_output'
    assert body['raw'] == 'not json at all'


def test_generate_empty_response_is_502(install_fake_openai):
    install_fake_openai('')
    client = TestClient(ai_main.app)
    payload = {'subject': 'Math', 'gradeLevel': '3rd Grade', 'topicArea': 'fractions'}
    r = client.post('/api/generate', json=payload)
    assert r.status_code == 502
    assert r.json()['error_kind'] == 'empty_response'


def test_voice_generate_end_to_end(install_fake_openai):
    calls = install_fake_openai(MOCK_QUIZ)
    client = TestClient(ai_main.app)
    r = client.post('/voice/generate', json={'transcript': 'Make a quiz on fractions for 5th grade with 3 questions'})
    assert r.status_code == 200
    body = r.json()
    assert body['success'] is True
    assert body['analysis']['slots']['questionCount'] == 3
    assert len(body['resource']['questions']) == 3
    assert body['metadata']['category'] == 'quiz'
    assert 'EXACTLY 3 questions' in calls.calls[0]['messages'][1]['content']


def test_voice_generate_overrides_win(install_fake_openai):
    install_fake_openai(MOCK_QUIZ)
    client = TestClient(ai_main.app)
    r = client.post('/voice/generate', json={
        'transcript': 'Make a quiz on fractions for 5th grade',
        'overrides': {'questionCount': 2, 'gradeLevel': '6th Grade'},
    })
    assert r.status_code == 200
    body = r.json()
    assert len(body['resource']['questions']) == 2


def test_voice_generate_reports_missing_slots(install_fake_openai):
    calls = install_fake_openai(MOCK_QUIZ)
    client = TestClient(ai_main.app)
    r = client.post('/voice/generate', json={'transcript': 'make me something nice'})
    assert r.status_code == 400
    body = r.json()
    assert body['analysis']['category'] == 'worksheet'
    assert {f['field'] for f in body['fields']} >= {'subject', 'gradeLevel', 'topicArea'}
    assert calls.calls == []
