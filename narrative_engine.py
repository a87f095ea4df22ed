"""
Narrative Adventure Engine
Plays a branching educational story one choice at a time.

The engine owns the player's state (inventory, story flags, character
relationships, visited scenes, score), filters choices by their conditions,
executes choice actions and produces a scored result once the story ends.
State can be saved to a flat JSON snapshot and loaded into a new engine.
"""

import copy
import json
import logging
import math
import operator
from dataclasses import fields
from datetime import datetime
from typing import Any, Callable, Optional, Union

from narrative_models import (
    ActionType,
    Choice,
    ChoiceOutcome,
    ConditionOperator,
    ConditionType,
    DifficultyLevel,
    GameAction,
    NarrativeActivity,
    NarrativeGameState,
    NarrativeResult,
    Scene,
    SceneCondition,
    StoryProgress,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

DIFFICULTY_VALUES = {
    DifficultyLevel.EASY: 1,
    DifficultyLevel.MEDIUM: 2,
    DifficultyLevel.HARD: 3,
}

FEEDBACK_TIERS = [
    (200, "Exceptional work! You showed a deep understanding of the topic "
          "and the ability to apply your knowledge in practice."),
    (150, "Very good work! Your decisions show a solid grasp of the concepts you learned."),
    (100, "Good work! Some of your decisions were very well thought out. "
          "Try experimenting more with the different options."),
]
KEEP_LEARNING_FEEDBACK = ("Keep learning! Every decision is a chance to learn something new. "
                          "Try the story again with different choices.")

RECOMMEND_SLOW_DOWN = "Take more time to think through each decision."
RECOMMEND_OBJECTIVES = "Focus on completing all of the learning objectives."
RECOMMEND_EXPLORE = "Explore more of the different paths and options in the story."

# Milliseconds per choice below which the player is told to slow down
MIN_THOUGHTFUL_CHOICE_MS = 5000
EXPLORATION_RATIO = 0.7

SNAPSHOT_FIELDS = [
    'currentSceneId', 'inventory', 'storyFlags', 'characterRelationships',
    'visitedScenes', 'totalChoices', 'totalPoints', 'startTime',
    'lastSaveTime', 'completedObjectives',
]
SNAPSHOT_LIST_FIELDS = [
    'inventory', 'storyFlags', 'characterRelationships', 'visitedScenes', 'completedObjectives',
]


def _strict_equals(actual: Any, expected: Any) -> bool:
    # True must not equal 1 and '1' must not equal 1
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    if isinstance(actual, str) != isinstance(expected, str):
        return False
    return actual == expected


OPERATORS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQ: _strict_equals,
    ConditionOperator.NE: lambda actual, expected: not _strict_equals(actual, expected),
    ConditionOperator.GT: operator.gt,
    ConditionOperator.LT: operator.lt,
    ConditionOperator.GE: operator.ge,
    ConditionOperator.LE: operator.le,
}


def compare_values(actual: Any, expected: Any, op: Union[ConditionOperator, str]) -> bool:
    """Compare two values; unknown operators and incomparable types are False."""
    try:
        compare = OPERATORS.get(op)
        if compare is None:
            return False
        return bool(compare(actual, expected))
    except TypeError:
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))


def _check_state(state: NarrativeGameState, history: list[StoryProgress]) -> None:
    """Raise ValueError if restored state would break arithmetic later in play."""
    if not isinstance(state.current_scene_id, str):
        raise ValueError(f"current scene id must be a string, got {state.current_scene_id!r}")
    if not isinstance(state.total_choices, int) or isinstance(state.total_choices, bool):
        raise ValueError(f"total choices must be an integer, got {state.total_choices!r}")
    if not _is_number(state.total_points):
        raise ValueError(f"total points must be a number, got {state.total_points!r}")
    for name in ('inventory', 'story_flags', 'character_relationships'):
        if not isinstance(getattr(state, name), dict):
            raise ValueError(f"{name} must be a mapping")
    for character, value in state.character_relationships.items():
        if not _is_number(value):
            raise ValueError(f"relationship with {character!r} must be a number, got {value!r}")
    if not isinstance(state.visited_scenes, set) or not all(isinstance(s, str) for s in state.visited_scenes):
        raise ValueError("visited scenes must be scene id strings")
    if (not isinstance(state.completed_objectives, list)
            or not all(isinstance(o, str) for o in state.completed_objectives)):
        raise ValueError("completed objectives must be a list of strings")
    for name in ('start_time', 'last_save_time'):
        value = getattr(state, name)
        if not isinstance(value, datetime) or value.tzinfo is None:
            raise ValueError(f"{name} must be a timezone-aware timestamp")
    for entry in history:
        if not all(isinstance(v, int) and not isinstance(v, bool)
                   for v in (entry.time_spent, entry.educational_value)):
            raise ValueError(f"Malformed progress entry for choice {entry.choice_id!r}")
        if entry.timestamp.tzinfo is None:
            raise ValueError(f"Progress timestamp for {entry.choice_id!r} has no timezone")


class NarrativeEngine:
    """State machine for a single play-through of a NarrativeActivity.

    One instance per player session. Instances share no mutable state, so
    concurrent sessions only need separate engines.
    """

    def __init__(self, activity: NarrativeActivity, initial_state: Optional[dict] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.activity = activity
        self._clock = clock or utc_now
        self._scenes: dict[str, Scene] = {scene.id: scene for scene in activity.available_scenes}
        self._progress_history: list[StoryProgress] = []

        now = self._clock()
        self._state = NarrativeGameState(
            current_scene_id=activity.starting_scene_id,
            start_time=now,
            last_save_time=now,
        )
        if initial_state:
            self._apply_initial_state(initial_state)

        self._action_handlers = {
            ActionType.ADD_ITEM: self._add_item,
            ActionType.REMOVE_ITEM: self._remove_item,
            ActionType.SET_FLAG: self._set_flag,
            ActionType.MODIFY_RELATIONSHIP: self._modify_relationship,
            ActionType.ADD_POINTS: self._add_points,
            ActionType.UNLOCK_SCENE: self._unlock_scene,
        }
        self._state_readers = {
            ConditionType.ITEM: self.has_item,
            ConditionType.FLAG: self.get_flag,
            ConditionType.RELATIONSHIP: self.get_relationship,
            ConditionType.VISITED: lambda key: key in self._state.visited_scenes,
            ConditionType.SCORE: lambda key: self._state.total_points,
        }

    def _apply_initial_state(self, initial_state: dict) -> None:
        known = {f.name for f in fields(NarrativeGameState)}
        for name, value in initial_state.items():
            if name not in known:
                raise ValueError(f"Unknown game state field: {name}")
            if isinstance(value, (dict, list, set)):
                value = copy.deepcopy(value)
            if name == 'visited_scenes':
                try:
                    value = set(value)
                except TypeError as e:
                    raise ValueError(f"Invalid visited scenes: {e}") from e
            elif name in ('start_time', 'last_save_time'):
                value = parse_timestamp(value)
            setattr(self._state, name, value)
        _check_state(self._state, self._progress_history)

    # --- Scene navigation ---

    def get_current_scene(self) -> Optional[Scene]:
        """Return the current scene and mark it visited.

        Returns None when the current scene id does not resolve, which stalls
        the play-through.
        """
        scene = self._scenes.get(self._state.current_scene_id)
        if scene is not None:
            self._state.visited_scenes.add(scene.id)
        return scene

    def get_available_choices(self) -> list[Choice]:
        """Choices of the current scene whose conditions currently hold, in authoring order."""
        scene = self.get_current_scene()
        if scene is None:
            return []
        return [choice for choice in scene.choices if self.evaluate_conditions(choice.conditions)]

    def is_scene_accessible(self, scene_id: str) -> bool:
        scene = self._scenes.get(scene_id)
        if scene is None:
            return False
        return self.evaluate_conditions(scene.conditions)

    def process_choice(self, choice_id: str) -> ChoiceOutcome:
        """Take a choice from the current scene and advance the story.

        The choice is looked up among all of the current scene's choices, not
        only the available ones. Unknown choices and a missing current scene
        return an unsuccessful outcome without touching state.
        """
        current_scene = self._scenes.get(self._state.current_scene_id)
        if current_scene is None:
            logger.warning("Cannot process choice %s: current scene %r does not exist",
                           choice_id, self._state.current_scene_id)
            return ChoiceOutcome(success=False)

        choice = current_scene.get_choice(choice_id)
        if choice is None:
            logger.info("Choice %s not found in scene %s", choice_id, current_scene.id)
            return ChoiceOutcome(success=False)

        self._state.visited_scenes.add(current_scene.id)
        now = self._clock()
        previous = self._progress_history[-1].timestamp if self._progress_history else self._state.start_time
        progress = StoryProgress(
            scene_id=current_scene.id,
            choice_id=choice.id,
            timestamp=now,
            educational_value=self.calculate_educational_value(choice, current_scene),
        )

        actions = list(choice.actions)
        messages = self._execute_actions(actions)

        if _is_number(choice.points):
            self._state.total_points += choice.points
        elif choice.points is not None:
            logger.warning("Ignoring points for choice %s: %r is not a number", choice.id, choice.points)

        self._state.total_choices += 1
        self._state.current_scene_id = choice.next_scene_id
        self._state.last_save_time = now

        progress.time_spent = _elapsed_ms(previous, now)
        self._progress_history.append(progress)

        next_scene = self._scenes.get(choice.next_scene_id)
        if next_scene is None:
            logger.warning("Choice %s leads to unknown scene %r", choice.id, choice.next_scene_id)

        outcome = ChoiceOutcome(
            success=True,
            next_scene=next_scene,
            actions=actions,
            messages=messages,
            educational_feedback=choice.educational_feedback,
            consequence=choice.consequence,
        )
        if (next_scene is not None and next_scene.is_ending) or self.is_story_complete():
            outcome.result = self._generate_result()
            logger.info("Story %s finished with score %d", self.activity.id, outcome.result.final_score)
        return outcome

    # --- Conditions ---

    def evaluate_conditions(self, conditions: list[SceneCondition]) -> bool:
        """True iff every condition holds. An empty list always holds."""
        return all(self._evaluate_condition(condition) for condition in conditions)

    def _evaluate_condition(self, condition: SceneCondition) -> bool:
        try:
            reader = self._state_readers.get(condition.type)
            if reader is None:
                logger.debug("Unknown condition type %r", condition.type)
                return False
            actual = reader(condition.key)
        except TypeError:
            # list or object tags and keys from JSON cannot be looked up
            logger.debug("Unusable condition %r", condition)
            return False
        return compare_values(actual, condition.value, condition.operator)

    # --- Actions ---

    def _execute_actions(self, actions: list[GameAction]) -> list[str]:
        messages = []
        for action in actions:
            try:
                handler = self._action_handlers.get(action.type)
            except TypeError:
                handler = None
            if handler is None:
                logger.warning("Ignoring unknown action type %r", action.type)
                continue
            if not isinstance(action.target, str):
                logger.warning("Ignoring %s action with target %r", action.type, action.target)
                continue
            handler(action)
            if action.message:
                messages.append(action.message)
        return messages

    def _add_item(self, action: GameAction) -> None:
        self._state.inventory[action.target] = True

    def _remove_item(self, action: GameAction) -> None:
        self._state.inventory.pop(action.target, None)

    def _set_flag(self, action: GameAction) -> None:
        self._state.story_flags[action.target] = action.value

    def _modify_relationship(self, action: GameAction) -> None:
        if not _is_number(action.value):
            logger.warning("Ignoring relationship change for %s: %r is not a number",
                           action.target, action.value)
            return
        current = self._state.character_relationships.get(action.target, 0)
        self._state.character_relationships[action.target] = current + action.value

    def _add_points(self, action: GameAction) -> None:
        if not _is_number(action.value):
            logger.warning("Ignoring points for %s: %r is not a number", action.target, action.value)
            return
        self._state.total_points += action.value

    def _unlock_scene(self, action: GameAction) -> None:
        # Scenes are gated by conditions only; unlocking has no state of its own
        logger.debug("Scene %s unlocked", action.target)

    # --- Scoring ---

    @staticmethod
    def calculate_educational_value(choice: Choice, scene: Scene) -> int:
        value = DIFFICULTY_VALUES.get(choice.difficulty, 1)
        if choice.educational_feedback:
            value += 2
        if scene.educational_content:
            value += 3
        return value

    def is_story_complete(self) -> bool:
        """All objectives completed, or the choice budget used up.

        With no declared objectives this is true from the start.
        """
        completed = len(self._state.completed_objectives)
        total = len(self.activity.educational_objectives)
        max_choices = self.activity.max_choices
        return completed >= total or bool(max_choices and self._state.total_choices >= max_choices)

    def complete_objective(self, objective: str) -> bool:
        """Record a declared objective as completed. Returns False if unknown or already done."""
        if objective not in self.activity.educational_objectives:
            logger.info("Ignoring undeclared objective %r", objective)
            return False
        if objective in self._state.completed_objectives:
            return False
        self._state.completed_objectives.append(objective)
        return True

    def _generate_result(self) -> NarrativeResult:
        total_time = _elapsed_ms(self._state.start_time, self._clock())
        steps = len(self._progress_history)
        average_value = (sum(p.educational_value for p in self._progress_history) / steps) if steps else 0

        time_bonus = max(0.0, 100 - total_time / 60000)
        educational_bonus = average_value * 10
        declared = len(self.activity.educational_objectives)
        objective_bonus = (len(self._state.completed_objectives) / declared) * 50 if declared else 0.0

        final_score = _round_half_up(self._state.total_points + time_bonus + educational_bonus + objective_bonus)

        return NarrativeResult(
            final_score=final_score,
            total_points=self._state.total_points,
            choices_made=self.get_progress_history(),
            objectives_completed=list(self._state.completed_objectives),
            educational_achievements=self._generate_achievements(),
            time_spent=total_time,
            feedback=self.feedback_for_score(final_score),
            next_recommendations=self._generate_recommendations(),
            time_bonus=time_bonus,
            educational_bonus=educational_bonus,
            objective_bonus=objective_bonus,
        )

    def _generate_achievements(self) -> list[str]:
        achievements = []
        if self._state.total_points > 100:
            achievements.append('high_scorer')
        if len(self._progress_history) > 10:
            achievements.append('thorough_explorer')
        if len(self._state.visited_scenes) == len(self._scenes):
            achievements.append('scene_master')
        if self._state.total_choices < 8:
            achievements.append('efficient_learner')
        return achievements

    @staticmethod
    def feedback_for_score(final_score: int) -> str:
        for threshold, message in FEEDBACK_TIERS:
            if final_score >= threshold:
                return message
        return KEEP_LEARNING_FEEDBACK

    def _generate_recommendations(self) -> list[str]:
        recommendations = []
        if self._progress_history:
            average_time = sum(p.time_spent for p in self._progress_history) / len(self._progress_history)
            if average_time < MIN_THOUGHTFUL_CHOICE_MS:
                recommendations.append(RECOMMEND_SLOW_DOWN)
        if len(self._state.completed_objectives) < len(self.activity.educational_objectives):
            recommendations.append(RECOMMEND_OBJECTIVES)
        if len(self._state.visited_scenes) < len(self._scenes) * EXPLORATION_RATIO:
            recommendations.append(RECOMMEND_EXPLORE)
        return recommendations

    # --- Read access ---

    def get_game_state(self) -> NarrativeGameState:
        return copy.deepcopy(self._state)

    def get_progress_history(self) -> list[StoryProgress]:
        return copy.deepcopy(self._progress_history)

    def has_item(self, item_id: str) -> bool:
        return self._state.inventory.get(item_id, False)

    def get_flag(self, flag_id: str) -> Any:
        return self._state.story_flags.get(flag_id)

    def get_relationship(self, character_id: str) -> float:
        return self._state.character_relationships.get(character_id, 0)

    # --- Save / load ---

    def to_snapshot(self) -> dict:
        """Flatten state into JSON-ready lists and scalars."""
        state = self._state
        return {
            'currentSceneId': state.current_scene_id,
            'inventory': [[key, value] for key, value in state.inventory.items()],
            'storyFlags': [[key, value] for key, value in state.story_flags.items()],
            'characterRelationships': [[key, value] for key, value in state.character_relationships.items()],
            'visitedScenes': sorted(state.visited_scenes),
            'totalChoices': state.total_choices,
            'totalPoints': state.total_points,
            'startTime': state.start_time.isoformat(),
            'lastSaveTime': state.last_save_time.isoformat(),
            'completedObjectives': list(state.completed_objectives),
            'progressHistory': [p.to_dict() for p in self._progress_history],
        }

    def save_state(self) -> str:
        return json.dumps(self.to_snapshot(), ensure_ascii=False)

    def load_state(self, save_data: Union[str, dict]) -> None:
        """Replace the engine's state with a snapshot from save_state().

        Raises ValueError if the snapshot is malformed; the current state is
        left untouched in that case.
        """
        if isinstance(save_data, str):
            try:
                save_data = json.loads(save_data)
            except json.JSONDecodeError as e:
                raise ValueError(f"Save data is not valid JSON: {e}") from e
        if not isinstance(save_data, dict):
            raise ValueError("Save data must be an object")
        for field_name in SNAPSHOT_FIELDS:
            if field_name not in save_data:
                raise ValueError(f"Missing required field in save data: {field_name}")
        for field_name in SNAPSHOT_LIST_FIELDS:
            if not isinstance(save_data[field_name], list):
                raise ValueError(f"Save data field {field_name} must be a list")

        try:
            state = NarrativeGameState(
                current_scene_id=save_data['currentSceneId'],
                inventory={key: value for key, value in save_data['inventory']},
                story_flags={key: value for key, value in save_data['storyFlags']},
                character_relationships={key: value for key, value in save_data['characterRelationships']},
                visited_scenes=set(save_data['visitedScenes']),
                total_choices=save_data['totalChoices'],
                total_points=save_data['totalPoints'],
                start_time=parse_timestamp(save_data['startTime']),
                last_save_time=parse_timestamp(save_data['lastSaveTime']),
                completed_objectives=list(save_data['completedObjectives']),
            )
            history = [StoryProgress.from_dict(p) for p in save_data.get('progressHistory', [])]
            _check_state(state, history)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Malformed save data: {e}") from e

        self._state = state
        self._progress_history = history
        logger.debug("Loaded state at scene %s after %d choices", state.current_scene_id, state.total_choices)

    @classmethod
    def from_saved_state(cls, activity: NarrativeActivity, save_data: Union[str, dict],
                         clock: Optional[Callable[[], datetime]] = None) -> 'NarrativeEngine':
        engine = cls(activity, clock=clock)
        engine.load_state(save_data)
        return engine
