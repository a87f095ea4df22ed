"""Tests for the Flask web API."""
import threading

import pytest
import requests

import server
from sample_activities import build_physics_demo


@pytest.fixture
def client():
    server.app.config['TESTING'] = True
    server.sessions.clear()
    with server.app.test_client() as client:
        yield client
    server.sessions.clear()


def start_demo(client):
    response = client.post('/api/sessions', json={'demo': True})
    assert response.status_code == 201
    return response.get_json()


def choose(client, session_id, choice_id):
    return client.post(f'/api/sessions/{session_id}/choices', json={'choice_id': choice_id})


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


class TestStatus:
    def test_status(self, client, monkeypatch):
        monkeypatch.setattr(server, 'ANTHROPIC_API_KEY', None)
        start_demo(client)

        data = client.get('/api/status').get_json()
        assert data['configured'] is False
        assert data['sessions'] == 1


class TestActivities:
    def test_create_activity(self, client):
        response = client.post('/api/activities', json={
            'title': 'Forces',
            'options': {
                'subject': 'physics', 'grade': 7, 'difficulty': 'easy',
                'educational_objectives': ['Inertia'], 'estimated_duration': 10,
            },
        })

        assert response.status_code == 201
        activity = response.get_json()
        assert activity['title'] == 'Forces'
        assert activity['max_choices'] == 4
        assert len(activity['available_scenes']) == 5

    def test_title_required(self, client):
        response = client.post('/api/activities', json={'title': '  ', 'options': {}})
        assert response.status_code == 400
        assert 'Title' in response.get_json()['error']

    def test_bad_options(self, client):
        response = client.post('/api/activities', json={'title': 'X', 'options': {'subject': 'physics'}})
        assert response.status_code == 400
        assert 'Missing required field' in response.get_json()['error']

    def test_no_body(self, client):
        assert client.post('/api/activities').status_code == 400

    def test_demo_activity(self, client):
        data = client.get('/api/activities/demo').get_json()
        assert data['id'] == 'physics_tower_gravity'
        assert data['starting_scene_id'] == 'tower_intro'

    def test_generated_demo_activity(self, client):
        data = client.get('/api/activities/demo?variant=generated').get_json()
        assert len(data['available_scenes']) == 8
        assert data['max_choices'] == 10
        assert data['content']['theme'] == 'laboratory'

    def test_quick_demo(self, client):
        data = client.get('/api/activities/demo?variant=quick').get_json()
        assert data['id'] == 'quick_physics_demo'

        view = client.post('/api/sessions', json={'demo': 'quick'}).get_json()
        final = choose(client, view['session_id'], 'choice_1').get_json()
        assert final['next_scene']['id'] == 'balloon_up'
        assert final['result']['total_points'] == 20


class TestPlaySession:
    def test_new_session_view(self, client):
        view = start_demo(client)

        assert view['scene']['id'] == 'tower_intro'
        assert [c['id'] for c in view['available_choices']] == [
            'analyze_foundation', 'choose_materials', 'start_building']
        assert view['state']['visited_scenes'] == ['tower_intro']
        assert view['result'] is None

    def test_full_playthrough(self, client):
        session_id = start_demo(client)['session_id']

        first = choose(client, session_id, 'analyze_foundation').get_json()
        assert first['messages'] == ['📐 You obtained the foundation plans']
        assert first['next_scene']['id'] == 'foundation_analysis'

        second = choose(client, session_id, 'calculate_steel').get_json()
        assert [c['id'] for c in second['available_choices']] == ['drop_test', 'measure_time']

        choose(client, session_id, 'measure_time')
        final = choose(client, session_id, 'same_acceleration').get_json()

        assert final['result']['total_points'] == 105
        assert len(final['result']['choices_made']) == 4
        assert 'available_choices' not in final

        view = client.get(f'/api/sessions/{session_id}').get_json()
        assert view['result'] == final['result']
        assert view['scene']['id'] == 'project_completion'

        response = choose(client, session_id, 'same_acceleration')
        assert response.status_code == 409

    def test_unavailable_choice(self, client):
        session_id = start_demo(client)['session_id']

        response = choose(client, session_id, 'same_acceleration')
        assert response.status_code == 400
        assert response.get_json()['outcome']['success'] is False

        view = client.get(f'/api/sessions/{session_id}').get_json()
        assert view['state']['total_choices'] == 0

    def test_choice_id_required(self, client):
        session_id = start_demo(client)['session_id']
        response = client.post(f'/api/sessions/{session_id}/choices', json={})
        assert response.status_code == 400

    def test_sessions_are_isolated(self, client):
        first = start_demo(client)['session_id']
        second = start_demo(client)['session_id']

        choose(client, first, 'analyze_foundation')

        view = client.get(f'/api/sessions/{second}').get_json()
        assert view['scene']['id'] == 'tower_intro'
        assert view['state']['total_points'] == 0

    def test_complete_objective(self, client):
        session_id = start_demo(client)['session_id']
        objective = build_physics_demo().educational_objectives[0]
        url = f'/api/sessions/{session_id}/objectives'

        assert client.post(url, json={'objective': objective}).get_json()['recorded'] is True
        data = client.post(url, json={'objective': objective}).get_json()
        assert data['recorded'] is False
        assert data['completed_objectives'] == [objective]

        assert client.post(url, json={}).status_code == 400

    @pytest.mark.parametrize('method,path', [
        ('get', '/api/sessions/nope'),
        ('delete', '/api/sessions/nope'),
        ('post', '/api/sessions/nope/choices'),
        ('post', '/api/sessions/nope/objectives'),
        ('get', '/api/sessions/nope/save'),
    ])
    def test_unknown_session(self, client, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 404

    def test_delete(self, client):
        session_id = start_demo(client)['session_id']

        assert client.delete(f'/api/sessions/{session_id}').status_code == 200
        assert client.get(f'/api/sessions/{session_id}').status_code == 404
        assert session_id not in server.sessions


class TestSessionSources:
    def test_source_required(self, client):
        assert client.post('/api/sessions', json={}).status_code == 400

    def test_inline_activity(self, client):
        activity = build_physics_demo().to_dict()
        response = client.post('/api/sessions', json={'activity': activity})
        assert response.status_code == 201
        assert response.get_json()['activity_id'] == 'physics_tower_gravity'

    def test_invalid_inline_activity(self, client):
        response = client.post('/api/sessions', json={'activity': {'id': 'x'}})
        assert response.status_code == 400

    def test_inline_activity_with_unusable_condition(self, client):
        activity = build_physics_demo().to_dict()
        activity['available_scenes'][0]['choices'][0]['conditions'] = [
            {'type': 'score', 'key': 'totalPoints', 'value': 0, 'operator': ['>=']},
        ]
        response = client.post('/api/sessions', json={'activity': activity})

        assert response.status_code == 201
        assert [c['id'] for c in response.get_json()['available_choices']] == [
            'choose_materials', 'start_building']

    def test_activity_url(self, client, monkeypatch):
        calls = []

        def fake_get(url, headers, timeout):
            calls.append(url)
            return FakeResponse(build_physics_demo().to_json())

        monkeypatch.setattr(server.requests, 'get', fake_get)
        response = client.post('/api/sessions', json={'activity_url': 'https://example.org/tower.json'})

        assert response.status_code == 201
        assert calls == ['https://example.org/tower.json']

    def test_activity_url_http_error(self, client, monkeypatch):
        monkeypatch.setattr(server.requests, 'get', lambda url, headers, timeout: FakeResponse('', 404))
        response = client.post('/api/sessions', json={'activity_url': 'https://example.org/missing.json'})
        assert response.status_code == 400

    def test_activity_url_connection_error(self, client, monkeypatch):
        def refuse(url, headers, timeout):
            raise requests.ConnectionError('refused')

        monkeypatch.setattr(server.requests, 'get', refuse)
        response = client.post('/api/sessions', json={'activity_url': 'https://example.org/down.json'})
        assert response.status_code == 400
        assert 'refused' in response.get_json()['error']


class TestSaveResume:
    def test_resume_from_save(self, client):
        session_id = start_demo(client)['session_id']
        choose(client, session_id, 'analyze_foundation')

        snapshot = client.get(f'/api/sessions/{session_id}/save').get_json()
        assert snapshot['currentSceneId'] == 'foundation_analysis'
        assert snapshot['totalPoints'] == 25

        response = client.post('/api/sessions', json={'demo': True, 'save': snapshot})
        assert response.status_code == 201
        view = response.get_json()
        assert view['session_id'] != session_id
        assert view['scene']['id'] == 'foundation_analysis'
        assert view['state']['inventory'] == ['foundation_plans']

    def test_malformed_save(self, client):
        response = client.post('/api/sessions', json={'demo': True, 'save': {'currentSceneId': 'x'}})
        assert response.status_code == 400

    def test_mistyped_save(self, client):
        session_id = start_demo(client)['session_id']
        snapshot = client.get(f'/api/sessions/{session_id}/save').get_json()
        snapshot['totalPoints'] = '5'

        response = client.post('/api/sessions', json={'demo': True, 'save': snapshot})
        assert response.status_code == 400
        assert 'total points' in response.get_json()['error']


class TestSessionLimits:
    def test_oldest_session_is_evicted(self, client, monkeypatch):
        monkeypatch.setattr(server, 'MAX_SESSIONS', 2)
        first = start_demo(client)['session_id']
        second = start_demo(client)['session_id']
        third = start_demo(client)['session_id']

        assert list(server.sessions) == [second, third]
        assert client.get(f'/api/sessions/{first}').status_code == 404
        assert client.get(f'/api/sessions/{third}').status_code == 200

    def test_each_session_has_its_own_lock(self, client):
        first = start_demo(client)['session_id']
        second = start_demo(client)['session_id']
        assert server.sessions[first]['lock'] is not server.sessions[second]['lock']

    def test_choice_waits_for_busy_session(self, client):
        session_id = start_demo(client)['session_id']
        lock = server.sessions[session_id]['lock']
        responses = []

        lock.acquire()
        other_client = server.app.test_client()
        worker = threading.Thread(
            target=lambda: responses.append(choose(other_client, session_id, 'analyze_foundation')))
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert server.sessions[session_id]['engine'].get_game_state().total_choices == 0

        lock.release()
        worker.join(timeout=5)
        assert responses[0].status_code == 200
