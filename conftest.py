"""Shared pytest fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from narrative_models import (
    ActionType,
    Choice,
    ConditionOperator,
    ConditionType,
    GameAction,
    NarrativeActivity,
    Scene,
    SceneCondition,
)
from scene_builder import SceneBuilder


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def builder():
    return SceneBuilder()


@pytest.fixture
def generated_activity(builder):
    """Two-objective physics activity: scene_1 .. scene_4, endings scene_5 and scene_6_alt."""
    return builder.create_narrative_activity('Forces', 'A story about forces', {
        'subject': 'physics',
        'grade': 7,
        'difficulty': 'medium',
        'educational_objectives': ['Newton\'s first law', 'Friction'],
        'estimated_duration': 25,
    })


@pytest.fixture
def sandbox_activity():
    """Hand-built graph for exercising actions and conditions."""
    start = Scene(
        id='start',
        title='Start',
        text='The beginning',
        choices=[
            Choice(
                id='gear_up',
                text='Pack your bag',
                next_scene_id='camp',
                points=5,
                actions=[
                    GameAction(ActionType.ADD_ITEM, 'map', True, 'You packed a map'),
                    GameAction(ActionType.ADD_ITEM, 'rope', True),
                    GameAction(ActionType.REMOVE_ITEM, 'rope', True),
                    GameAction(ActionType.SET_FLAG, 'weather', 'sunny', 'The sun is out'),
                    GameAction(ActionType.MODIFY_RELATIONSHIP, 'guide', 2),
                    GameAction(ActionType.MODIFY_RELATIONSHIP, 'guide', -1),
                    GameAction(ActionType.ADD_POINTS, 'bonus', 7),
                    GameAction(ActionType.UNLOCK_SCENE, 'summit'),
                ],
            ),
            Choice(
                id='wander',
                text='Wander off',
                next_scene_id='nowhere',
            ),
            Choice(
                id='secret_path',
                text='Take the secret path',
                next_scene_id='summit',
                conditions=[SceneCondition(ConditionType.ITEM, 'map', True, ConditionOperator.EQ)],
                points=50,
            ),
        ],
    )
    camp = Scene(
        id='camp',
        title='Camp',
        text='A quiet camp',
        choices=[
            Choice(id='climb', text='Climb', next_scene_id='summit', points=10,
                   conditions=[SceneCondition(ConditionType.RELATIONSHIP, 'guide', 1, ConditionOperator.GE)]),
            Choice(id='rest', text='Rest', next_scene_id='camp'),
        ],
    )
    summit = Scene(id='summit', title='Summit', text='The top', is_ending=True)
    return NarrativeActivity(
        id='sandbox',
        title='Sandbox',
        description='',
        starting_scene_id='start',
        available_scenes=[start, camp, summit],
        educational_objectives=['Navigate with a map'],
    )
