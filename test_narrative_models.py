"""Unit tests for narrative_models.py"""
import json
from datetime import datetime, timezone

import pytest

from narrative_models import (
    ActionType,
    Choice,
    ChoiceOutcome,
    ConditionOperator,
    ConditionType,
    GameAction,
    NarrativeActivity,
    Scene,
    SceneCondition,
    StoryProgress,
    parse_timestamp,
)


def minimal_activity_dict(**overrides):
    data = {
        'id': 'tiny',
        'title': 'Tiny',
        'starting_scene_id': 'a',
        'available_scenes': [
            {'id': 'a', 'title': 'A', 'text': 'first', 'choices': [
                {'id': 'go', 'text': 'Go', 'next_scene_id': 'b'},
            ]},
            {'id': 'b', 'title': 'B', 'text': 'last', 'is_ending': True},
        ],
    }
    data.update(overrides)
    return data


class TestActivitySerialization:
    def test_generated_activity_survives_json(self, generated_activity):
        restored = NarrativeActivity.from_json(generated_activity.to_json())
        assert restored == generated_activity

    def test_defaults_for_optional_fields(self):
        activity = NarrativeActivity.from_dict(minimal_activity_dict())

        assert activity.description == ''
        assert activity.educational_objectives == []
        assert activity.max_choices is None
        assert activity.type == 'narrative_adventure'
        first = activity.get_scene('a')
        assert first.choices[0].points is None
        assert first.choices[0].difficulty is None
        assert activity.get_scene('b').is_ending is True
        assert activity.get_scene('missing') is None

    def test_learning_objectives_default_to_educational_objectives(self):
        activity = NarrativeActivity.from_dict(minimal_activity_dict(educational_objectives=['x']))
        assert activity.learning_objectives == ['x']

    def test_tags_serialize_as_plain_strings(self, generated_activity):
        data = json.loads(generated_activity.to_json())
        challenge_gate = data['available_scenes'][3]['conditions'][0]
        assert challenge_gate == {'type': 'score', 'key': 'totalPoints', 'value': 30, 'operator': '>='}
        assert data['difficulty'] == 'medium'

    @pytest.mark.parametrize('missing', ['id', 'title', 'starting_scene_id', 'available_scenes'])
    def test_missing_activity_field(self, missing):
        data = minimal_activity_dict()
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            NarrativeActivity.from_dict(data)

    def test_missing_choice_field(self):
        data = minimal_activity_dict()
        del data['available_scenes'][0]['choices'][0]['next_scene_id']
        with pytest.raises(ValueError, match='next_scene_id'):
            NarrativeActivity.from_dict(data)

    def test_non_object_scene(self):
        with pytest.raises(ValueError):
            NarrativeActivity.from_dict(minimal_activity_dict(available_scenes=['oops']))

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            NarrativeActivity.from_json('{not json')

    def test_from_json_file(self, tmp_path, generated_activity):
        path = tmp_path / 'activity.json'
        path.write_text(generated_activity.to_json(), encoding='utf-8')
        assert NarrativeActivity.from_json_file(str(path)).id == generated_activity.id


class TestUnknownTags:
    def test_unknown_condition_type_kept_raw(self):
        condition = SceneCondition.from_dict({'type': 'weather', 'key': 'sky', 'value': 'blue', 'operator': '=='})
        assert condition.type == 'weather'
        assert not isinstance(condition.type, ConditionType)
        assert condition.operator is ConditionOperator.EQ
        assert condition.to_dict()['type'] == 'weather'

    def test_unknown_operator_kept_raw(self):
        condition = SceneCondition.from_dict({'type': 'flag', 'key': 'k', 'value': 1, 'operator': '~='})
        assert condition.operator == '~='

    def test_unknown_action_type_kept_raw(self):
        action = GameAction.from_dict({'type': 'teleport', 'target': 'moon'})
        assert action.type == 'teleport'
        assert action.value is None
        assert 'message' not in action.to_dict()

    def test_known_tags_become_enums(self):
        action = GameAction.from_dict({'type': 'add_item', 'target': 'key', 'value': True})
        assert action.type is ActionType.ADD_ITEM


class TestSceneLookup:
    def test_get_choice(self):
        scene = Scene(id='s', title='S', text='t', choices=[Choice(id='c', text='C', next_scene_id='s')])
        assert scene.get_choice('c').next_scene_id == 's'
        assert scene.get_choice('nope') is None


class TestProgressRecords:
    def test_camel_case_keys(self):
        progress = StoryProgress('s', 'c', datetime(2024, 1, 1, tzinfo=timezone.utc), 1500, 4)
        assert progress.to_dict() == {
            'sceneId': 's',
            'choiceId': 'c',
            'timestamp': '2024-01-01T00:00:00+00:00',
            'timeSpent': 1500,
            'educationalValue': 4,
        }
        assert StoryProgress.from_dict(progress.to_dict()) == progress

    def test_zulu_timestamps(self):
        assert parse_timestamp('2024-01-01T00:00:00Z') == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize('value', ['last tuesday', 42, None])
    def test_bad_timestamps(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestChoiceOutcome:
    def test_failed_outcome(self):
        outcome = ChoiceOutcome(success=False)
        assert not outcome.is_complete
        assert outcome.to_dict() == {'success': False, 'next_scene': None, 'actions': [], 'messages': []}
