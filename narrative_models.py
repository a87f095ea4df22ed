"""
Narrative Adventure data model
Scenes, choices, conditions and actions that make up a branching
educational story, plus the runtime state tracked while it is played.

Every record can be loaded from and dumped to plain dictionaries so that
activities can be authored by hand as JSON, produced by the scene builder,
or shipped over the web service without a separate schema layer.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class DifficultyLevel(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class ConditionType(str, Enum):
    """Which part of the player state a condition reads."""
    ITEM = 'item'
    FLAG = 'flag'
    RELATIONSHIP = 'relationship'
    VISITED = 'visited'
    SCORE = 'score'


class ConditionOperator(str, Enum):
    EQ = '=='
    NE = '!='
    GT = '>'
    LT = '<'
    GE = '>='
    LE = '<='


class ActionType(str, Enum):
    """Side effects a choice can carry."""
    ADD_ITEM = 'add_item'
    REMOVE_ITEM = 'remove_item'
    SET_FLAG = 'set_flag'
    MODIFY_RELATIONSHIP = 'modify_relationship'
    ADD_POINTS = 'add_points'
    UNLOCK_SCENE = 'unlock_scene'


def _coerce_enum(enum_cls, value):
    """Return the enum member for value, or the raw value if it is not one.

    Unknown tags are kept as-is so the engine can fail them closed instead
    of rejecting the whole activity at load time.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return value


def _require(data: dict, fields: list[str], record: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{record} must be an object, got {type(data).__name__}")
    for field_name in fields:
        if field_name not in data:
            raise ValueError(f"Missing required field for {record}: {field_name}")


def _tag(value) -> Any:
    return value.value if isinstance(value, Enum) else value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 timestamp (a trailing 'Z' is accepted)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value[:-1] + '+00:00' if value.endswith('Z') else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid timestamp: {value!r}") from None


@dataclass
class SceneCondition:
    """A predicate over player state gating a scene or a choice."""
    type: Union[ConditionType, str]
    key: str
    value: Any
    operator: Union[ConditionOperator, str] = ConditionOperator.EQ

    def to_dict(self) -> dict:
        return {
            'type': _tag(self.type),
            'key': self.key,
            'value': self.value,
            'operator': _tag(self.operator),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SceneCondition':
        _require(data, ['type', 'key', 'value', 'operator'], 'condition')
        return cls(
            type=_coerce_enum(ConditionType, data['type']),
            key=data['key'],
            value=data['value'],
            operator=_coerce_enum(ConditionOperator, data['operator']),
        )


@dataclass
class GameAction:
    """A side effect executed when a choice is taken."""
    type: Union[ActionType, str]
    target: str
    value: Any = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'type': _tag(self.type), 'target': self.target, 'value': self.value}
        if self.message is not None:
            data['message'] = self.message
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'GameAction':
        _require(data, ['type', 'target'], 'action')
        return cls(
            type=_coerce_enum(ActionType, data['type']),
            target=data['target'],
            value=data.get('value'),
            message=data.get('message'),
        )


@dataclass
class SceneReward:
    """Badge, XP or item granted by an ending scene. Informational only."""
    type: str
    value: Union[int, str]
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'type': self.type, 'value': self.value}
        if self.message is not None:
            data['message'] = self.message
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'SceneReward':
        _require(data, ['type', 'value'], 'reward')
        return cls(type=data['type'], value=data['value'], message=data.get('message'))


@dataclass
class EducationalContent:
    """Learning material attached to a scene."""
    concept: str
    explanation: str
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    subject: str = 'general'
    examples: list[str] = field(default_factory=list)
    related_concepts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'concept': self.concept,
            'explanation': self.explanation,
            'examples': list(self.examples),
            'related_concepts': list(self.related_concepts),
            'difficulty': _tag(self.difficulty),
            'subject': self.subject,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EducationalContent':
        _require(data, ['concept', 'explanation'], 'educational content')
        return cls(
            concept=data['concept'],
            explanation=data['explanation'],
            difficulty=_coerce_enum(DifficultyLevel, data.get('difficulty', 'medium')),
            subject=data.get('subject', 'general'),
            examples=list(data.get('examples', [])),
            related_concepts=list(data.get('related_concepts', [])),
        )


@dataclass
class Choice:
    """An edge from one scene to another."""
    id: str
    text: str
    next_scene_id: str
    description: str = ''
    conditions: list[SceneCondition] = field(default_factory=list)
    actions: list[GameAction] = field(default_factory=list)
    points: Optional[int] = None
    consequence: Optional[str] = None
    educational_feedback: Optional[str] = None
    difficulty: Optional[DifficultyLevel] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'text': self.text,
            'description': self.description,
            'next_scene_id': self.next_scene_id,
            'conditions': [c.to_dict() for c in self.conditions],
            'actions': [a.to_dict() for a in self.actions],
            'points': self.points,
            'consequence': self.consequence,
            'educational_feedback': self.educational_feedback,
            'difficulty': _tag(self.difficulty),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Choice':
        _require(data, ['id', 'text', 'next_scene_id'], 'choice')
        difficulty = data.get('difficulty')
        return cls(
            id=data['id'],
            text=data['text'],
            next_scene_id=data['next_scene_id'],
            description=data.get('description', ''),
            conditions=[SceneCondition.from_dict(c) for c in data.get('conditions') or []],
            actions=[GameAction.from_dict(a) for a in data.get('actions') or []],
            points=data.get('points'),
            consequence=data.get('consequence'),
            educational_feedback=data.get('educational_feedback'),
            difficulty=_coerce_enum(DifficultyLevel, difficulty) if difficulty else None,
        )


@dataclass
class Scene:
    """A node in the story graph."""
    id: str
    title: str
    text: str
    location: str = ''
    description: str = ''
    choices: list[Choice] = field(default_factory=list)
    conditions: list[SceneCondition] = field(default_factory=list)
    rewards: list[SceneReward] = field(default_factory=list)
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    is_ending: bool = False
    educational_content: Optional[EducationalContent] = None

    def get_choice(self, choice_id: str) -> Optional[Choice]:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'location': self.location,
            'description': self.description,
            'text': self.text,
            'choices': [c.to_dict() for c in self.choices],
            'conditions': [c.to_dict() for c in self.conditions],
            'rewards': [r.to_dict() for r in self.rewards],
            'image_url': self.image_url,
            'audio_url': self.audio_url,
            'is_ending': self.is_ending,
            'educational_content': (
                self.educational_content.to_dict() if self.educational_content else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Scene':
        _require(data, ['id', 'title', 'text'], 'scene')
        content = data.get('educational_content')
        return cls(
            id=data['id'],
            title=data['title'],
            text=data['text'],
            location=data.get('location', ''),
            description=data.get('description', ''),
            choices=[Choice.from_dict(c) for c in data.get('choices') or []],
            conditions=[SceneCondition.from_dict(c) for c in data.get('conditions') or []],
            rewards=[SceneReward.from_dict(r) for r in data.get('rewards') or []],
            image_url=data.get('image_url'),
            audio_url=data.get('audio_url'),
            is_ending=bool(data.get('is_ending', False)),
            educational_content=EducationalContent.from_dict(content) if content else None,
        )


@dataclass
class NarrativeActivity:
    """A complete playable story: the scene graph plus its metadata."""
    id: str
    title: str
    description: str
    starting_scene_id: str
    available_scenes: list[Scene] = field(default_factory=list)
    educational_objectives: list[str] = field(default_factory=list)
    max_choices: Optional[int] = None
    content: dict = field(default_factory=dict)
    points: int = 0
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    learning_objectives: list[str] = field(default_factory=list)
    required_items: list[str] = field(default_factory=list)
    type: str = 'narrative_adventure'

    def get_scene(self, scene_id: str) -> Optional[Scene]:
        for scene in self.available_scenes:
            if scene.id == scene_id:
                return scene
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'description': self.description,
            'content': dict(self.content),
            'points': self.points,
            'difficulty': _tag(self.difficulty),
            'learning_objectives': list(self.learning_objectives),
            'starting_scene_id': self.starting_scene_id,
            'available_scenes': [s.to_dict() for s in self.available_scenes],
            'required_items': list(self.required_items),
            'max_choices': self.max_choices,
            'educational_objectives': list(self.educational_objectives),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> 'NarrativeActivity':
        """Load an activity from a dictionary."""
        _require(data, ['id', 'title', 'starting_scene_id', 'available_scenes'], 'activity')
        objectives = list(data.get('educational_objectives', []))
        return cls(
            id=data['id'],
            title=data['title'],
            description=data.get('description', ''),
            starting_scene_id=data['starting_scene_id'],
            available_scenes=[Scene.from_dict(s) for s in data['available_scenes']],
            educational_objectives=objectives,
            max_choices=data.get('max_choices'),
            content=dict(data.get('content') or {}),
            points=data.get('points', 0),
            difficulty=_coerce_enum(DifficultyLevel, data.get('difficulty', 'medium')),
            learning_objectives=list(data.get('learning_objectives', objectives)),
            required_items=list(data.get('required_items', [])),
            type=data.get('type', 'narrative_adventure'),
        )

    @classmethod
    def from_json(cls, text: str) -> 'NarrativeActivity':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Activity is not valid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_json_file(cls, filepath: str) -> 'NarrativeActivity':
        with open(filepath, 'r', encoding='utf-8') as f:
            return cls.from_json(f.read())


@dataclass
class NarrativeTemplate:
    """A hand-authored scene set that the builder can wrap into an activity."""
    id: str
    name: str
    description: str
    subject: str
    grade: int
    estimated_duration: float
    scenes: list[Scene]
    educational_goals: list[str] = field(default_factory=list)
    required_knowledge: list[str] = field(default_factory=list)


@dataclass
class NarrativeGameState:
    """Runtime player state owned by one engine instance."""
    current_scene_id: str
    inventory: dict[str, bool] = field(default_factory=dict)
    story_flags: dict[str, Any] = field(default_factory=dict)
    character_relationships: dict[str, float] = field(default_factory=dict)
    visited_scenes: set[str] = field(default_factory=set)
    total_choices: int = 0
    total_points: int = 0
    start_time: datetime = field(default_factory=utc_now)
    last_save_time: datetime = field(default_factory=utc_now)
    completed_objectives: list[str] = field(default_factory=list)


@dataclass
class StoryProgress:
    """One processed choice in the play-through log."""
    scene_id: str
    choice_id: str
    timestamp: datetime
    time_spent: int = 0
    educational_value: int = 0

    def to_dict(self) -> dict:
        return {
            'sceneId': self.scene_id,
            'choiceId': self.choice_id,
            'timestamp': self.timestamp.isoformat(),
            'timeSpent': self.time_spent,
            'educationalValue': self.educational_value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StoryProgress':
        _require(data, ['sceneId', 'choiceId', 'timestamp'], 'progress entry')
        return cls(
            scene_id=data['sceneId'],
            choice_id=data['choiceId'],
            timestamp=parse_timestamp(data['timestamp']),
            time_spent=data.get('timeSpent', 0),
            educational_value=data.get('educationalValue', 0),
        )


@dataclass
class NarrativeResult:
    """Final outcome of a finished play-through."""
    final_score: int
    total_points: int
    choices_made: list[StoryProgress]
    objectives_completed: list[str]
    educational_achievements: list[str]
    time_spent: int
    feedback: str
    next_recommendations: list[str] = field(default_factory=list)
    time_bonus: float = 0.0
    educational_bonus: float = 0.0
    objective_bonus: float = 0.0
    type: str = 'narrative_complete'

    def to_dict(self) -> dict:
        return {
            'type': self.type,
            'final_score': self.final_score,
            'total_points': self.total_points,
            'choices_made': [p.to_dict() for p in self.choices_made],
            'objectives_completed': list(self.objectives_completed),
            'educational_achievements': list(self.educational_achievements),
            'time_spent': self.time_spent,
            'feedback': self.feedback,
            'next_recommendations': list(self.next_recommendations),
            'time_bonus': self.time_bonus,
            'educational_bonus': self.educational_bonus,
            'objective_bonus': self.objective_bonus,
        }


@dataclass
class ChoiceOutcome:
    """What process_choice hands back to the caller."""
    success: bool
    next_scene: Optional[Scene] = None
    actions: list[GameAction] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    result: Optional[NarrativeResult] = None
    educational_feedback: Optional[str] = None
    consequence: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    def to_dict(self) -> dict:
        data = {
            'success': self.success,
            'next_scene': self.next_scene.to_dict() if self.next_scene else None,
            'actions': [a.to_dict() for a in self.actions],
            'messages': list(self.messages),
        }
        if self.result is not None:
            data['result'] = self.result.to_dict()
        if self.educational_feedback is not None:
            data['educational_feedback'] = self.educational_feedback
        if self.consequence is not None:
            data['consequence'] = self.consequence
        return data
