"""
Narrative Adventure Web Server
Flask backend that builds narrative activities and plays them.

Each play session gets its own NarrativeEngine; sessions never share state.
Scene text can be narrated by Claude AI when an API key is configured.
"""

import logging
import os
import threading
import uuid

import requests
from flask import Flask, request, jsonify

from narrative_engine import NarrativeEngine
from narrative_models import NarrativeActivity
from sample_activities import build_gravity_adventure, build_physics_demo, build_quick_physics_demo
from scene_builder import SceneBuilderOptions, generate_narrative_activity

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16MB max

# Get API key from environment
ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY')
FETCH_TIMEOUT = 30

# Oldest sessions are dropped once this many are open
MAX_SESSIONS = int(os.environ.get('NARRATIVE_MAX_SESSIONS', '500'))

# session id -> {'engine': NarrativeEngine, 'result': dict or None, 'lock': Lock}
# An engine expects one caller at a time, so every request on a session holds its lock.
sessions = {}
sessions_lock = threading.Lock()


def check_api_key():
    """Check if API key is configured and return status info."""
    if not ANTHROPIC_API_KEY:
        return {
            'configured': False,
            'message': 'ANTHROPIC_API_KEY environment variable not set. AI narration disabled.'
        }
    return {
        'configured': True,
        'message': 'Claude AI narration ready'
    }


def fetch_activity_from_url(url):
    """Fetch a hand-authored activity definition (JSON) from a URL."""
    headers = {
        'Accept': 'application/json',
        'User-Agent': 'NarrativeAdventure/1.0'
    }
    try:
        response = requests.get(url, headers=headers, timeout=FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ValueError(f"Error fetching activity from {url}: {e}") from e
    return NarrativeActivity.from_json(response.text)


def _store_session(engine):
    """Register a new session, dropping the oldest ones past MAX_SESSIONS."""
    session_id = uuid.uuid4().hex
    session = {'engine': engine, 'result': None, 'lock': threading.Lock()}
    with sessions_lock:
        while sessions and len(sessions) >= MAX_SESSIONS:
            evicted = next(iter(sessions))
            del sessions[evicted]
            logger.info("Evicted session %s", evicted)
        sessions[session_id] = session
    return session_id, session


def _session_or_404(session_id):
    with sessions_lock:
        session = sessions.get(session_id)
    if session is None:
        return None, (jsonify({'error': f'Unknown session: {session_id}'}), 404)
    return session, None


def _session_view(session_id, session):
    engine = session['engine']
    scene = engine.get_current_scene()
    state = engine.get_game_state()
    return {
        'session_id': session_id,
        'activity_id': engine.activity.id,
        'scene': scene.to_dict() if scene else None,
        'available_choices': [c.to_dict() for c in engine.get_available_choices()],
        'state': {
            'total_points': state.total_points,
            'total_choices': state.total_choices,
            'inventory': sorted(k for k, v in state.inventory.items() if v),
            'story_flags': state.story_flags,
            'character_relationships': state.character_relationships,
            'visited_scenes': sorted(state.visited_scenes),
            'completed_objectives': state.completed_objectives,
        },
        'result': session['result'],
    }


@app.route('/api/status', methods=['GET'])
def api_status():
    """Return API status including AI availability."""
    status = check_api_key()
    status['sessions'] = len(sessions)
    return jsonify(status)


@app.route('/api/activities', methods=['POST'])
def create_activity():
    """Generate an activity from builder options."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400

    title = data.get('title', '').strip()
    if not title:
        return jsonify({'error': 'Title is required'}), 400

    try:
        options = SceneBuilderOptions.from_dict(data.get('options') or {})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    api_key = ANTHROPIC_API_KEY if data.get('use_ai') else None
    activity = generate_narrative_activity(title, data.get('description', ''), options, api_key)
    return jsonify(activity.to_dict()), 201


@app.route('/api/activities/demo', methods=['GET'])
def demo_activity():
    variant = request.args.get('variant')
    if variant == 'generated':
        return jsonify(build_gravity_adventure().to_dict())
    if variant == 'quick':
        return jsonify(build_quick_physics_demo().to_dict())
    return jsonify(build_physics_demo().to_dict())


@app.route('/api/sessions', methods=['POST'])
def start_session():
    """Start a play session from an inline activity, a URL or the demo."""
    data = request.get_json(silent=True) or {}

    try:
        if data.get('activity'):
            activity = NarrativeActivity.from_dict(data['activity'])
        elif data.get('activity_url'):
            activity = fetch_activity_from_url(data['activity_url'])
        elif data.get('demo') == 'quick':
            activity = build_quick_physics_demo()
        elif data.get('demo'):
            activity = build_physics_demo()
        else:
            return jsonify({'error': 'Provide activity, activity_url or demo'}), 400

        engine = NarrativeEngine(activity)
        if data.get('save'):
            engine.load_state(data['save'])
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    session_id, session = _store_session(engine)
    logger.info("Started session %s for activity %s", session_id, activity.id)
    with session['lock']:
        return jsonify(_session_view(session_id, session)), 201


@app.route('/api/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    with session['lock']:
        return jsonify(_session_view(session_id, session))


@app.route('/api/sessions/<session_id>', methods=['DELETE'])
def end_session(session_id):
    with sessions_lock:
        removed = sessions.pop(session_id, None)
    if removed is None:
        return jsonify({'error': f'Unknown session: {session_id}'}), 404
    return jsonify({'deleted': session_id})


@app.route('/api/sessions/<session_id>/choices', methods=['POST'])
def make_choice(session_id):
    """Process a player's choice."""
    session, error = _session_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    choice_id = data.get('choice_id')
    if not choice_id:
        return jsonify({'error': 'choice_id is required'}), 400

    with session['lock']:
        if session['result'] is not None:
            return jsonify({'error': 'Story already finished'}), 409

        outcome = session['engine'].process_choice(choice_id)
        if not outcome.success:
            return jsonify({'error': f'Choice {choice_id} is not available', 'outcome': outcome.to_dict()}), 400

        body = outcome.to_dict()
        if outcome.result is not None:
            session['result'] = body['result']
        else:
            body['available_choices'] = [c.to_dict() for c in session['engine'].get_available_choices()]
    return jsonify(body)


@app.route('/api/sessions/<session_id>/objectives', methods=['POST'])
def complete_objective(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    objective = data.get('objective')
    if not objective:
        return jsonify({'error': 'objective is required'}), 400
    with session['lock']:
        recorded = session['engine'].complete_objective(objective)
        completed = session['engine'].get_game_state().completed_objectives
    return jsonify({'recorded': recorded, 'completed_objectives': completed})


@app.route('/api/sessions/<session_id>/save', methods=['GET'])
def save_session(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    with session['lock']:
        snapshot = session['engine'].to_snapshot()
    return jsonify(snapshot)


@app.errorhandler(500)
def internal_error(e):
    logger.error("Unhandled server error: %s", e)
    return jsonify({'error': 'Internal server error'}), 500


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Narrative Adventure Engine - Web API")
    print("=" * 60)

    api_status = check_api_key()
    if api_status['configured']:
        print(f"\n[OK] {api_status['message']}")
    else:
        print(f"\n[WARNING] {api_status['message']}")
        print("         Activities will use template text.")

    print("\nAPI listening on http://localhost:5000")
    print("Press Ctrl+C to stop the server\n")
    print("=" * 60)

    app.run(debug=True, port=5000)
