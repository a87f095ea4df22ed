"""
Narrative Scene Builder
Generates branching educational adventures from a handful of authoring
parameters (subject, grade, difficulty, learning objectives, duration).

The builder lays out a fixed story shape: an opening scene, one educational
scene per objective, a final challenge and two endings. Subject and theme
only change the flavor text, never the graph or the scoring. Scene text can
optionally be rewritten by Claude AI; the graph itself is always built from
templates so that play-throughs stay predictable.
"""

import argparse
import copy
import json
import logging
import math
import os
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import anthropic

from narrative_models import (
    ActionType,
    Choice,
    ConditionOperator,
    ConditionType,
    DifficultyLevel,
    EducationalContent,
    GameAction,
    NarrativeActivity,
    NarrativeTemplate,
    Scene,
    SceneCondition,
    SceneReward,
)

logger = logging.getLogger(__name__)

AI_MODEL = os.environ.get('NARRATIVE_AI_MODEL', 'claude-sonnet-4-20250514')

# Points needed before the final challenge opens up
CHALLENGE_SCORE_GATE = 30
# Pacing heuristic: roughly one decision every 2.5 minutes
MINUTES_PER_CHOICE = 2.5


@dataclass
class SceneBuilderOptions:
    """Authoring parameters for a generated activity."""
    subject: str
    grade: int
    difficulty: DifficultyLevel
    educational_objectives: list[str]
    estimated_duration: float
    theme: Optional[str] = None
    include_multimedia: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'SceneBuilderOptions':
        """Load builder options from a dictionary."""
        required_fields = ['subject', 'grade', 'difficulty', 'educational_objectives', 'estimated_duration']
        for field_name in required_fields:
            if field_name not in data:
                raise ValueError(f"Missing required field: {field_name}")

        objectives = data['educational_objectives']
        if not isinstance(objectives, list):
            raise ValueError("educational_objectives must be a list")
        try:
            difficulty = DifficultyLevel(data['difficulty'])
        except ValueError:
            raise ValueError(f"Unknown difficulty: {data['difficulty']}") from None

        return cls(
            subject=data['subject'],
            grade=data['grade'],
            difficulty=difficulty,
            educational_objectives=[str(obj) for obj in objectives],
            estimated_duration=data['estimated_duration'],
            theme=data.get('theme'),
            include_multimedia=bool(data.get('include_multimedia', False)),
        )

    @classmethod
    def from_json_file(cls, filepath: str) -> 'SceneBuilderOptions':
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


SUBJECT_TEMPLATES = {
    'physics': {
        'location': 'School physics laboratory',
        'text': 'You are standing in a modern physics laboratory full of fascinating instruments '
                'and experiments. Your task is to investigate physical phenomena and put theory into practice.',
        'icon': '🔬',
    },
    'chemistry': {
        'location': 'Chemistry laboratory',
        'text': 'You step into a well-equipped chemistry lab. Around you are reagents, instruments '
                'and reaction vessels. A study of chemical reactions awaits.',
        'icon': '⚗️',
    },
    'biology': {
        'location': 'Biology classroom with microscopes',
        'text': 'You find yourself in a biology classroom full of microscopes, specimens and models. '
                'Your task is to explore the world of living organisms.',
        'icon': '🔬',
    },
    'mathematics': {
        'location': 'Mathematics classroom with an interactive whiteboard',
        'text': 'You enter a modern maths classroom with an interactive whiteboard and geometric models. '
                'Interesting mathematical problems are waiting for you.',
        'icon': '📐',
    },
    'general': {
        'location': 'Interactive learning center',
        'text': 'You find yourself in a modern learning center full of interactive exhibits and study materials.',
        'icon': '🏫',
    },
}

OBJECTIVE_LOCATIONS = {
    'physics': ['Mechanics lab', 'Electronics workshop', 'Optics lab', 'Astronomical observatory'],
    'chemistry': ['Inorganic chemistry lab', 'Organic chemistry lab', 'Analytical lab', 'Industrial hall'],
    'biology': ['Botanical garden', 'Zoology lab', 'Microbiology lab', 'Field station'],
    'mathematics': ['Geometry workshop', 'Computer lab', 'Statistics center', 'Applied maths lab'],
    'general': ['Research center', 'Interactive lab', 'Experiment space', 'Study center'],
}

SCENE_TEXT_TEMPLATES = [
    'You face a new challenge built around "{objective}". Tools and materials lie around you '
    'that could help you understand this important principle.',
    'You are in a situation that calls for putting your knowledge of "{objective}" into practice. '
    'How will you proceed?',
    'An interesting problem about "{objective}" lies ahead. Your decision will shape how deeply '
    'you get into the topic.',
    'The time has come to explore "{objective}" from a practical angle. Which approach will you choose?',
]


def get_subject_template(subject: str) -> dict:
    return SUBJECT_TEMPLATES.get(subject.lower(), SUBJECT_TEMPLATES['general'])


def get_objective_locations(subject: str) -> list[str]:
    return OBJECTIVE_LOCATIONS.get(subject.lower(), OBJECTIVE_LOCATIONS['general'])


def get_theme_context(theme: str) -> dict:
    """Get atmosphere and player role for a story theme."""
    theme_lower = theme.lower()

    theme_contexts = {
        'space': {
            'role': 'a newly assigned crew member',
            'atmosphere': 'The hum of life support fills the air. Through the viewport, stars stretch into the void.',
        },
        'adventure': {
            'role': 'the expedition leader',
            'atmosphere': 'The unknown stretches before you, full of both promise and peril.',
        },
        'time travel': {
            'role': 'a temporal researcher',
            'atmosphere': 'The temporal field shimmers around you as history unfolds. Every action ripples through time.',
        },
        'detective': {
            'role': 'the lead investigator',
            'atmosphere': 'Clues hide in plain sight. Somewhere in the details lies the truth.',
        },
        'mystery': {
            'role': 'the lead investigator',
            'atmosphere': 'Clues hide in plain sight. Somewhere in the details lies the truth.',
        },
        'research': {
            'role': 'a research assistant',
            'atmosphere': 'Data tells stories to those who listen carefully. Method separates discovery from guesswork.',
        },
        'laboratory': {
            'role': 'a research assistant',
            'atmosphere': 'Data tells stories to those who listen carefully. Method separates discovery from guesswork.',
        },
        'nature': {
            'role': 'a field naturalist',
            'atmosphere': 'Birdsong and rustling leaves surround you. The living world is waiting to be understood.',
        },
        'ocean': {
            'role': 'a marine scientist',
            'atmosphere': 'Waves slap against the hull of the research vessel. Below, a whole world waits in the blue.',
        },
    }

    for key, context in theme_contexts.items():
        if key in theme_lower:
            return context

    return {
        'role': 'a curious explorer',
        'atmosphere': 'The situation demands your full attention and curiosity.',
    }


class SceneBuilder:
    """Builds scene graphs for narrative activities.

    Scene and choice ids come from per-builder counters (scene_1, choice_1, ...),
    so they are only unique within one builder's output.
    """

    def __init__(self):
        self.scene_counter = 0
        self.choice_counter = 0

    def create_narrative_activity(self, title: str, description: str, options) -> NarrativeActivity:
        """Generate a complete activity. Options may be SceneBuilderOptions or a dict."""
        if isinstance(options, dict):
            options = SceneBuilderOptions.from_dict(options)

        scenes = self.generate_scenes(options)
        activity = NarrativeActivity(
            id=f"narrative_{uuid.uuid4().hex[:12]}",
            title=title,
            description=description,
            starting_scene_id=scenes[0].id,
            available_scenes=scenes,
            educational_objectives=list(options.educational_objectives),
            max_choices=self.calculate_max_choices(options.estimated_duration),
            content={
                'theme': options.theme or 'general',
                'subject': options.subject,
                'grade': options.grade,
                'include_multimedia': options.include_multimedia,
            },
            points=self.calculate_total_points(scenes),
            difficulty=options.difficulty,
            learning_objectives=list(options.educational_objectives),
        )
        logger.info("Built activity %s with %d scenes (max %s choices)",
                    activity.id, len(scenes), activity.max_choices)
        return activity

    def generate_scenes(self, options: SceneBuilderOptions) -> list[Scene]:
        """Opening, one scene per objective, challenge, success and alternative endings."""
        objectives = options.educational_objectives

        opening_id = self._next_scene_id()
        objective_ids = [self._next_scene_id() for _ in objectives]
        challenge_id = self._next_scene_id()
        success_id = self._next_scene_id()
        alternative_id = self._next_scene_id() + '_alt'

        # Gates on each scene, copied onto every choice that leads into it
        challenge_gate = [SceneCondition(ConditionType.SCORE, 'totalPoints',
                                         CHALLENGE_SCORE_GATE, ConditionOperator.GE)]
        objective_gates = [[]] + [
            [SceneCondition(ConditionType.VISITED, previous_id, True, ConditionOperator.EQ)]
            for previous_id in objective_ids[:-1]
        ]

        if objective_ids:
            first_id, first_gate = objective_ids[0], objective_gates[0]
        else:
            first_id, first_gate = challenge_id, challenge_gate

        scenes = [self._create_opening_scene(options, opening_id, first_id, first_gate)]
        if not objective_ids:
            scenes[0].choices.append(self._create_review_choice(alternative_id))

        for i, objective in enumerate(objectives):
            is_last = i == len(objectives) - 1
            next_id = challenge_id if is_last else objective_ids[i + 1]
            next_gate = challenge_gate if is_last else objective_gates[i + 1]
            scene = self._create_educational_scene(objective, options, i + 1, objective_ids[i],
                                                   objective_gates[i], next_id, next_gate)
            if is_last:
                scene.choices.append(self._create_review_choice(alternative_id))
            scenes.append(scene)

        scenes.append(self._create_challenge_scene(options, challenge_id, challenge_gate,
                                                   success_id, alternative_id))
        scenes.append(self._create_ending_scene(options, success_id, is_success=True))
        scenes.append(self._create_ending_scene(options, alternative_id, is_success=False))
        return scenes

    def _create_opening_scene(self, options: SceneBuilderOptions, scene_id: str,
                              next_scene_id: str, next_gate: list[SceneCondition]) -> Scene:
        template = get_subject_template(options.subject)

        text = template['text']
        if options.theme:
            theme_context = get_theme_context(options.theme)
            text = (f"{theme_context['atmosphere']}\n\n{text} "
                    f"Today you take on the role of {theme_context['role']}.")

        return Scene(
            id=scene_id,
            title=f"{template['icon']} The adventure begins",
            location=template['location'],
            description=f"Opening scene for {options.subject}",
            text=text,
            choices=[
                Choice(
                    id=self._next_choice_id(),
                    text='Explore the available equipment and materials',
                    description='Get to know the environment and the tools at hand',
                    next_scene_id=next_scene_id,
                    conditions=copy.deepcopy(next_gate),
                    points=10,
                    educational_feedback='Excellent! Knowing your surroundings is the basis of any successful investigation.',
                    difficulty=DifficultyLevel.EASY,
                ),
                Choice(
                    id=self._next_choice_id(),
                    text='Ask for instructions and procedures',
                    description='Find out more about what is expected',
                    next_scene_id=next_scene_id,
                    conditions=copy.deepcopy(next_gate),
                    points=8,
                    educational_feedback='Good! Asking for instructions shows a responsible approach to learning.',
                    difficulty=DifficultyLevel.EASY,
                ),
                Choice(
                    id=self._next_choice_id(),
                    text='Jump straight into the first experiment',
                    description='Dive into action without preparation',
                    next_scene_id=next_scene_id,
                    conditions=copy.deepcopy(next_gate),
                    points=5,
                    consequence='Your enthusiasm is admirable, but preparation is the key to success!',
                    educational_feedback='Enthusiasm is great, but a systematic approach gets better results.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
            ],
            educational_content=EducationalContent(
                concept='The scientific method and preparation',
                explanation='Every investigation starts with preparation and getting to know the environment. '
                            'A systematic approach leads to better results.',
                examples=[
                    'Learning the safety procedures',
                    'Getting to know the available tools and materials',
                    'Planning the procedure before starting an experiment',
                ],
                difficulty=options.difficulty,
                subject=options.subject,
            ),
        )

    def _create_educational_scene(self, objective: str, options: SceneBuilderOptions, index: int,
                                  scene_id: str, gate: list[SceneCondition],
                                  next_scene_id: str, next_gate: list[SceneCondition]) -> Scene:
        return Scene(
            id=scene_id,
            title=f"📚 Learning challenge {index}",
            location=self.generate_location_for_objective(options.subject, index),
            description=f"Scene focused on: {objective}",
            text=self.generate_scene_text(objective, index),
            choices=self.generate_educational_choices(objective, index, next_scene_id, next_gate),
            conditions=copy.deepcopy(gate),
            educational_content=EducationalContent(
                concept=objective,
                explanation=self.generate_explanation(objective, options.subject),
                examples=self.generate_examples(objective, options.subject),
                difficulty=options.difficulty,
                subject=options.subject,
            ),
        )

    def _create_review_choice(self, alternative_id: str) -> Choice:
        """Way out for players who have not earned enough points for the challenge."""
        return Choice(
            id=self._next_choice_id(),
            text='Step back and review what you have learned so far',
            description='Take a different path to the end of the adventure',
            next_scene_id=alternative_id,
            conditions=[SceneCondition(ConditionType.SCORE, 'totalPoints',
                                       CHALLENGE_SCORE_GATE, ConditionOperator.LT)],
            points=0,
            educational_feedback='Reviewing is a valid strategy. Come back to the challenge when you feel ready.',
            difficulty=DifficultyLevel.EASY,
        )

    def _create_challenge_scene(self, options: SceneBuilderOptions, scene_id: str,
                                gate: list[SceneCondition], success_id: str, alternative_id: str) -> Scene:
        return Scene(
            id=scene_id,
            title='🎯 The final challenge',
            location='Examination room',
            description='Final challenge combining every concept you learned',
            text='The time has come to show everything you have learned! A complex task lies ahead '
                 'that requires applying all the knowledge you gathered on this adventure.',
            choices=[
                Choice(
                    id=self._next_choice_id(),
                    text='Systematically apply every principle you learned',
                    description='Use a structured approach based on what you know',
                    next_scene_id=success_id,
                    points=50,
                    actions=[GameAction(ActionType.ADD_POINTS, 'bonus', 25, '🏆 Bonus for a systematic approach!')],
                    educational_feedback='Outstanding! Systematically applying knowledge is the mark of a true expert.',
                    difficulty=DifficultyLevel.HARD,
                ),
                Choice(
                    id=self._next_choice_id(),
                    text='Try a creative solution',
                    description='Find an innovative approach to the problem',
                    next_scene_id=alternative_id,
                    points=40,
                    actions=[GameAction(ActionType.ADD_POINTS, 'creativity', 20, '🎨 Bonus for creativity!')],
                    educational_feedback='Great! Creativity and innovation drive scientific progress.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
            ],
            conditions=copy.deepcopy(gate),
            educational_content=EducationalContent(
                concept='Applying and combining knowledge',
                explanation='Real understanding shows in the ability to apply and combine concepts in new situations.',
                examples=[
                    'Combining theory with practical skills',
                    'Solving complex problems creatively',
                    'Applying learned principles systematically',
                ],
                difficulty=options.difficulty,
                subject=options.subject,
            ),
        )

    def _create_ending_scene(self, options: SceneBuilderOptions, scene_id: str, is_success: bool) -> Scene:
        if is_success:
            return Scene(
                id=scene_id,
                title='🎉 Mission accomplished',
                location='Ceremonial hall',
                description='Successful end of the learning adventure',
                text='Congratulations! You completed every challenge and showed an excellent understanding '
                     'of all the concepts. Your systematic approach sets an example for others.',
                is_ending=True,
                rewards=[
                    SceneReward('badge', 'narrative_master', '🏅 You earned the Story Master badge!'),
                    SceneReward('xp', 100, '⭐ 100 bonus XP for finishing!'),
                ],
                educational_content=EducationalContent(
                    concept='Completing the learning journey',
                    explanation='You finished a complex learning journey and showed you can apply what you learned.',
                    difficulty=options.difficulty,
                    subject=options.subject,
                ),
            )
        return Scene(
            id=scene_id,
            title='🌟 A different ending',
            location='Study room',
            description='An alternative path to the end of the adventure',
            text="Even though you didn't take the traditional path, you learned a lot! Every path has "
                 "its value, and your own way of solving problems shows there is more than one way to reach a goal.",
            is_ending=True,
            rewards=[
                SceneReward('badge', 'creative_thinker', '🎨 You earned the Creative Thinker badge!'),
                SceneReward('xp', 75, '⭐ 75 bonus XP for an alternative approach!'),
            ],
            educational_content=EducationalContent(
                concept='Different approaches to learning',
                explanation='Every student learns and thinks in their own way. Different approaches enrich learning.',
                difficulty=options.difficulty,
                subject=options.subject,
            ),
        )

    def generate_educational_choices(self, objective: str, index: int, next_scene_id: str,
                                     next_gate: list[SceneCondition]) -> list[Choice]:
        return [
            Choice(
                id=self._next_choice_id(),
                text=f'Study the theory behind "{objective}"',
                description='Focus on understanding the basic principles',
                next_scene_id=next_scene_id,
                conditions=copy.deepcopy(next_gate),
                points=15,
                educational_feedback=f'Well done! Understanding the theory is the foundation for applying "{objective}".',
                difficulty=DifficultyLevel.EASY,
            ),
            Choice(
                id=self._next_choice_id(),
                text=f'Experiment hands-on with "{objective}"',
                description='Learn through practical experience',
                next_scene_id=next_scene_id,
                conditions=copy.deepcopy(next_gate),
                points=20,
                actions=[GameAction(ActionType.ADD_ITEM, f'experiment_{index}', True,
                                    f'🧪 You ran an experiment on "{objective}"')],
                educational_feedback=f'Great! Experimenting deepens your understanding of "{objective}".',
                difficulty=DifficultyLevel.MEDIUM,
            ),
            Choice(
                id=self._next_choice_id(),
                text=f'Apply "{objective}" to a real-world problem',
                description='Find a practical use in everyday life',
                next_scene_id=next_scene_id,
                conditions=copy.deepcopy(next_gate),
                points=25,
                actions=[GameAction(ActionType.SET_FLAG, f'applied_{index}', True,
                                    f'💡 You applied "{objective}" to a real problem')],
                educational_feedback=f'Excellent! Applying it to real problems shows you truly understand "{objective}".',
                difficulty=DifficultyLevel.HARD,
            ),
        ]

    @staticmethod
    def generate_location_for_objective(subject: str, index: int) -> str:
        locations = get_objective_locations(subject)
        return locations[(index - 1) % len(locations)]

    @staticmethod
    def generate_scene_text(objective: str, index: int) -> str:
        template = SCENE_TEXT_TEMPLATES[(index - 1) % len(SCENE_TEXT_TEMPLATES)]
        return template.format(objective=objective)

    @staticmethod
    def generate_explanation(objective: str, subject: str) -> str:
        return (f'The concept "{objective}" is a basic building block of {subject}. Understanding it '
                f'helps you see more complex connections and apply your knowledge in practice.')

    @staticmethod
    def generate_examples(objective: str, subject: str) -> list[str]:
        return [
            f'Everyday applications of "{objective}"',
            f'Verifying the principles of "{objective}" by experiment',
            f'How "{objective}" connects to other concepts in {subject}',
        ]

    @staticmethod
    def calculate_total_points(scenes: list[Scene]) -> int:
        return sum(choice.points or 0 for scene in scenes for choice in scene.choices)

    @staticmethod
    def calculate_max_choices(estimated_duration: float) -> int:
        return math.ceil(estimated_duration / MINUTES_PER_CHOICE)

    def create_from_template(self, template: NarrativeTemplate) -> NarrativeActivity:
        """Wrap a hand-authored template into a playable activity."""
        if not template.scenes:
            raise ValueError(f"Template {template.id} has no scenes")
        return NarrativeActivity(
            id=f"narrative_{uuid.uuid4().hex[:12]}",
            title=template.name,
            description=template.description,
            starting_scene_id=template.scenes[0].id,
            available_scenes=list(template.scenes),
            educational_objectives=list(template.educational_goals),
            max_choices=self.calculate_max_choices(template.estimated_duration),
            content={
                'template_id': template.id,
                'subject': template.subject,
                'grade': template.grade,
            },
            points=self.calculate_total_points(template.scenes),
            difficulty=DifficultyLevel.MEDIUM,
            learning_objectives=list(template.educational_goals),
        )

    def create_quick_scene(self, title: str, text: str, choices: list[dict]) -> Scene:
        """Build a single scene from {text, next_scene_id, points?} dicts."""
        return Scene(
            id=self._next_scene_id(),
            title=title,
            location='General setting',
            text=text,
            choices=[
                Choice(
                    id=self._next_choice_id(),
                    text=choice['text'],
                    next_scene_id=choice['next_scene_id'],
                    points=10 if choice.get('points') is None else choice['points'],
                    difficulty=DifficultyLevel.MEDIUM,
                )
                for choice in choices
            ],
        )

    def _next_scene_id(self) -> str:
        self.scene_counter += 1
        return f"scene_{self.scene_counter}"

    def _next_choice_id(self) -> str:
        self.choice_counter += 1
        return f"choice_{self.choice_counter}"


def narrate_activity_with_ai(activity: NarrativeActivity, api_key: str,
                             model: Optional[str] = None) -> NarrativeActivity:
    """
    Use Claude AI to rewrite the scene text of an activity.

    Only the prose changes: ids, choices, conditions and points are kept, so
    the narrated activity plays exactly like the template one. Returns a new
    activity and leaves the input untouched.
    """
    client = anthropic.Anthropic(api_key=api_key)

    subject = activity.content.get('subject', 'general')
    grade = activity.content.get('grade', '')
    theme = activity.content.get('theme', 'general')
    scenes_list = "\n".join(
        f'- id: {scene.id}\n  title: {scene.title}\n  location: {scene.location}\n  text: {scene.text}'
        for scene in activity.available_scenes
    )
    objectives_list = "\n".join(f"- {obj}" for obj in activity.educational_objectives) or "- (none)"

    prompt = f"""You are narrating an educational choose-your-own-adventure for grade {grade} students.

Subject: {subject}
Theme: {theme}

Learning objectives:
{objectives_list}

Rewrite the text of each scene below so it is vivid, age-appropriate and stays on the subject.
Keep every scene's meaning and keep each text under 80 words. Do not mention choices or points.

Scenes:
{scenes_list}

Return ONLY valid JSON in this shape:
{{"scenes": {{"<scene id>": "<new text>"}}}}"""

    logger.debug("Requesting AI narration for %d scenes", len(activity.available_scenes))

    try:
        message = client.messages.create(
            model=model or AI_MODEL,
            max_tokens=4000,
            messages=[
                {"role": "user", "content": prompt}
            ]
        )

        response_text = message.content[0].text

        json_match = re.search(r'\{[\s\S]*\}', response_text)
        if not json_match:
            raise ValueError("No valid JSON found in AI response")
        narration = json.loads(json_match.group())

    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse AI response as JSON: {e}")
    except anthropic.APIError as e:
        raise RuntimeError(f"Claude API error: {e}")

    texts = narration.get('scenes') if isinstance(narration, dict) else None
    if not isinstance(texts, dict):
        raise ValueError("AI response has no 'scenes' object")

    narrated = copy.deepcopy(activity)
    for scene in narrated.available_scenes:
        new_text = texts.get(scene.id)
        if isinstance(new_text, str) and new_text.strip():
            scene.text = new_text.strip()
    return narrated


def generate_narrative_activity(title: str, description: str, options,
                                api_key: Optional[str] = None) -> NarrativeActivity:
    """
    Build an activity and narrate it with AI if a key is available.
    Falls back to the template text if narration fails.
    """
    activity = SceneBuilder().create_narrative_activity(title, description, options)

    if not api_key:
        logger.info("Skipping AI narration - no API key configured")
        return activity

    try:
        narrated = narrate_activity_with_ai(activity, api_key)
        logger.info("AI narration successful for %s", activity.id)
        return narrated
    except (RuntimeError, ValueError) as e:
        logger.warning("AI narration failed (%s), using template text", e)
        return activity


def main():
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Generate branching narrative adventure activities.",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("input_file", nargs="?", help="JSON file with builder options")
    parser.add_argument("-o", "--output", help="Output JSON filename")
    parser.add_argument("--title", default="Narrative Adventure", help="Activity title")
    parser.add_argument("--description", default="", help="Activity description")
    parser.add_argument("--demo", action="store_true", help="Write the hand-authored demo activity")
    parser.add_argument("--api-key", help="Anthropic API key (or set ANTHROPIC_API_KEY env var)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    api_key = args.api_key or os.environ.get('ANTHROPIC_API_KEY')

    if args.demo or not args.input_file:
        from sample_activities import build_physics_demo
        print("Demo mode - writing sample activity...")
        activity = build_physics_demo()
        output_file = args.output or "demo_activity.json"
    else:
        options = SceneBuilderOptions.from_json_file(args.input_file)
        activity = generate_narrative_activity(args.title, args.description, options, api_key)
        output_file = args.output or Path(args.input_file).stem + "_activity.json"

    with open(output_file, 'w', encoding='utf-8') as f:
        f.write(activity.to_json())

    print(f"Generated: {output_file}")
    return 0


if __name__ == "__main__":
    exit(main())
