"""
Flask web application for the bracket engine.

Brackets are stored one YAML file per bracket under ``TOURNAMENT_DATA_DIR``.
Every write goes through a file lock and saves the whole bracket at once, so
a recorded result and its propagation are stored together.
"""
import os
import re
import yaml
from filelock import FileLock, Timeout
from flask import Flask, jsonify, request

from brackets.advancement import Bracket
from brackets.errors import (
    AlreadyCompletedError,
    AmbiguousResultError,
    BracketCompleteError,
    BracketError,
    ConfigError,
    GameNotFoundError,
    InvalidWinnerError,
    PairingError,
    ParticipantCountError,
    PropagationError,
    RoundIncompleteError,
    SlotNotReadyError,
    UnsupportedTypeError,
)
from brackets.models import BracketConfig, Participant
from brackets.swiss import pair_next_round

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = float(os.environ.get('BRACKET_LOCK_TIMEOUT', '10'))

# Called with (slug, ResultUpdate) after a result has been saved
NOTIFIERS = []

# Error type -> HTTP status
ERROR_STATUS = [
    (GameNotFoundError, 404),
    (AlreadyCompletedError, 409),
    (RoundIncompleteError, 409),
    (BracketCompleteError, 409),
    (PairingError, 409),
    (PropagationError, 500),
    (ParticipantCountError, 400),
    (ConfigError, 400),
    (UnsupportedTypeError, 400),
    (InvalidWinnerError, 400),
    (AmbiguousResultError, 400),
    (SlotNotReadyError, 400),
]


class BracketNotFound(Exception):
    pass


def _slugify(name: str) -> str:
    """Convert bracket name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'bracket'


def _brackets_dir() -> str:
    return os.path.join(DATA_DIR, 'brackets')


def _bracket_path(slug: str) -> str:
    if not re.match(r'^[a-z0-9-]+$', slug):
        raise BracketNotFound(slug)
    return os.path.join(_brackets_dir(), f'{slug}.yaml')


def _data_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=LOCK_TIMEOUT)


def load_bracket(slug: str) -> dict:
    """Load a stored bracket document: {'name': ..., 'bracket': Bracket}."""
    path = _bracket_path(slug)
    if not os.path.exists(path):
        raise BracketNotFound(slug)
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data or 'bracket' not in data:
        app.logger.warning(f'Bracket file {path} is empty or malformed')
        raise BracketNotFound(slug)
    return {'name': data.get('name', slug), 'bracket': Bracket.from_dict(data['bracket'])}


def save_bracket(slug: str, name: str, bracket: Bracket):
    """Save a bracket to its YAML file."""
    os.makedirs(_brackets_dir(), exist_ok=True)
    with open(_bracket_path(slug), 'w', encoding='utf-8') as f:
        yaml.dump({'name': name, 'bracket': bracket.to_dict()}, f, default_flow_style=False)


def list_brackets() -> list:
    """Summaries of every stored bracket, sorted by slug."""
    directory = _brackets_dir()
    if not os.path.isdir(directory):
        return []
    summaries = []
    for filename in sorted(os.listdir(directory)):
        if not filename.endswith('.yaml'):
            continue
        slug = filename[:-len('.yaml')]
        try:
            stored = load_bracket(slug)
        except (BracketNotFound, BracketError, yaml.YAMLError) as e:
            app.logger.warning(f'Skipping unreadable bracket {filename}: {e}')
            continue
        summaries.append({
            'slug': slug,
            'name': stored['name'],
            'match_type': stored['bracket'].config.match_type.value,
            'games': len(stored['bracket']),
            'is_complete': stored['bracket'].is_complete,
        })
    return summaries


def bracket_payload(slug: str, name: str, bracket: Bracket) -> dict:
    """Bracket data formatted for API responses."""
    payload = bracket.to_dict()
    payload['slug'] = slug
    payload['name'] = name
    payload['is_complete'] = bracket.is_complete
    if bracket.config.match_type.is_elimination:
        champion = bracket.champion()
        payload['champion'] = champion.to_dict() if champion else None
    return payload


def parse_participants(raw) -> list:
    """Accept a list of names or of {'id', 'name', 'seed'} dicts."""
    if not isinstance(raw, list):
        raise ConfigError('participants must be a list')
    participants = []
    for entry in raw:
        if isinstance(entry, str):
            participants.append(Participant(entry, entry))
        elif isinstance(entry, dict):
            participants.append(Participant.from_dict(entry))
        else:
            raise ConfigError(f'Invalid participant entry: {entry!r}')
    return participants


def notify(slug: str, update):
    """Fan a saved result out to registered notifiers; failures never touch stored state."""
    for notifier in NOTIFIERS:
        try:
            notifier(slug, update)
        except Exception:
            app.logger.exception(f'Notifier {notifier!r} failed for bracket {slug}')


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            break
    else:
        status = 400
    if status == 500:
        app.logger.error(f'Bracket integrity error: {error}')
    return jsonify({'error': str(error), 'kind': type(error).__name__}), status


@app.errorhandler(BracketNotFound)
def handle_bracket_not_found(error):
    return jsonify({'error': f'Bracket not found: {error}'}), 404


@app.errorhandler(Timeout)
def handle_lock_timeout(error):
    app.logger.warning(f'Timed out waiting for data lock: {error}')
    return jsonify({'error': 'Bracket is busy, try again'}), 503


@app.route('/api/brackets', methods=['GET'])
def api_list_brackets():
    """List stored brackets."""
    return jsonify({'brackets': list_brackets()})


@app.route('/api/brackets', methods=['POST'])
def api_create_bracket():
    """Seed participants and build a new bracket."""
    data = request.get_json(silent=True) or {}

    name = str(data.get('name', '')).strip()
    if not name:
        return jsonify({'error': 'Bracket name is required'}), 400
    if not data.get('match_type'):
        return jsonify({'error': 'match_type is required'}), 400

    random_seed = data.get('random_seed')
    if random_seed is not None and (isinstance(random_seed, bool) or not isinstance(random_seed, int)):
        return jsonify({'error': 'random_seed must be an integer'}), 400

    participants = parse_participants(data.get('participants', []))
    options = data.get('options') or {}
    if not isinstance(options, dict):
        raise ConfigError('options must be an object')
    try:
        config = BracketConfig(
            data['match_type'], len(participants),
            seeding=data.get('seeding', 'registration'),
            **options,
        )
    except TypeError as e:
        raise ConfigError(f'Invalid bracket options: {e}')

    bracket = Bracket.create(config, participants, rng=random_seed)
    slug = _slugify(name)

    with _data_lock():
        if os.path.exists(_bracket_path(slug)):
            return jsonify({'error': f'A bracket with a similar name already exists ("{slug}")'}), 409
        save_bracket(slug, name, bracket)

    app.logger.info(f'Created {config.match_type.value} bracket {slug} with '
                    f'{len(participants)} participants and {len(bracket)} games')
    return jsonify(bracket_payload(slug, name, bracket)), 201


@app.route('/api/brackets/<slug>', methods=['GET'])
def api_get_bracket(slug):
    """Return a bracket with its games and champion."""
    stored = load_bracket(slug)
    return jsonify(bracket_payload(slug, stored['name'], stored['bracket']))


@app.route('/api/brackets/<slug>', methods=['DELETE'])
def api_delete_bracket(slug):
    """Delete a bracket; regenerating means deleting and creating again."""
    with _data_lock():
        path = _bracket_path(slug)
        if not os.path.exists(path):
            raise BracketNotFound(slug)
        os.remove(path)
    app.logger.info(f'Deleted bracket {slug}')
    return jsonify({'success': True})


@app.route('/api/brackets/<slug>/games/<code>/start', methods=['POST'])
def api_start_game(slug, code):
    """Mark a scheduled game as in progress."""
    with _data_lock():
        stored = load_bracket(slug)
        node = stored['bracket'].start_game(code)
        save_bracket(slug, stored['name'], stored['bracket'])
    return jsonify({'success': True, 'node': node.to_dict()})


@app.route('/api/brackets/<slug>/games/<code>/result', methods=['POST'])
def api_record_result(slug, code):
    """Record a game result and propagate it through the bracket."""
    data = request.get_json(silent=True) or {}
    score1 = data.get('score1')
    score2 = data.get('score2')
    for score in (score1, score2):
        if score is not None and (isinstance(score, bool) or not isinstance(score, (int, float))):
            return jsonify({'error': 'Scores must be numbers'}), 400

    with _data_lock():
        stored = load_bracket(slug)
        bracket = stored['bracket']
        update = bracket.record_result(code, score1, score2, data.get('winner'))
        save_bracket(slug, stored['name'], bracket)

    app.logger.info(f'Recorded {slug} {code}: {score1}-{score2}, '
                    f'{len(update.propagated)} downstream games updated')
    notify(slug, update)

    response = update.to_dict()
    response['success'] = True
    if bracket.config.match_type.is_elimination:
        champion = bracket.champion()
        response['champion'] = champion.to_dict() if champion else None
    return jsonify(response)


@app.route('/api/brackets/<slug>/standings', methods=['GET'])
def api_standings(slug):
    """Standings table for round-robin, league and Swiss brackets."""
    stored = load_bracket(slug)
    rows = stored['bracket'].standings()
    return jsonify({'standings': [row.to_dict() for row in rows]})


@app.route('/api/brackets/<slug>/rounds', methods=['POST'])
def api_next_round(slug):
    """Pair the next Swiss round once the current one is complete."""
    with _data_lock():
        stored = load_bracket(slug)
        nodes = pair_next_round(stored['bracket'])
        save_bracket(slug, stored['name'], stored['bracket'])
    app.logger.info(f'Paired round {nodes[0].round} of {slug}')
    return jsonify({'success': True, 'nodes': [n.to_dict() for n in nodes]}), 201


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
