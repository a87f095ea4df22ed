"""
Sample narrative activities.

A hand-authored physics adventure that uses items, story flags, character
relationships and conditional choices, a generated one built with the
SceneBuilder, and a quick balloon demo made of quick scenes. Used by the CLI
demo mode and the web service's demo endpoints.
"""

from narrative_models import (
    ActionType,
    Choice,
    ConditionOperator,
    ConditionType,
    DifficultyLevel,
    EducationalContent,
    GameAction,
    NarrativeActivity,
    Scene,
    SceneCondition,
    SceneReward,
)
from scene_builder import SceneBuilder, SceneBuilderOptions


def build_gravity_adventure() -> NarrativeActivity:
    """Generated adventure about gravity and free fall."""
    return SceneBuilder().create_narrative_activity(
        '🌍 Gravity adventure',
        'An interactive story about gravity and free fall with hands-on experiments',
        SceneBuilderOptions(
            subject='physics',
            grade=8,
            difficulty=DifficultyLevel.MEDIUM,
            educational_objectives=[
                'Understand gravitational acceleration',
                'Apply the laws of free fall',
                'Experiment with different masses',
                'Measure time and distance of a fall',
            ],
            estimated_duration=25,
            theme='laboratory',
            include_multimedia=True,
        ),
    )


def build_quick_physics_demo() -> NarrativeActivity:
    """Short balloon demo assembled with create_quick_scene."""
    builder = SceneBuilder()

    release = builder.create_quick_scene(
        '🎈 The falling balloon',
        'You are holding a balloon filled with helium. What happens when you let go?',
        [
            {'text': 'The balloon floats up', 'next_scene_id': 'balloon_up', 'points': 20},
            {'text': 'The balloon falls down', 'next_scene_id': 'balloon_down', 'points': 5},
            {'text': 'The balloon stays where it is', 'next_scene_id': 'balloon_static', 'points': 10},
        ],
    )

    endings = {
        'balloon_up': ('✨ Result of the experiment',
                       'The balloon really does float up! Helium is lighter than air, so the buoyant '
                       'force of the air is greater than the gravitational force on the balloon.'),
        'balloon_down': ('🤔 Not quite',
                         'The balloon rises instead. Gravity pulls on it, but the air pushes up harder '
                         'because helium is lighter than the air it displaces.'),
        'balloon_static': ('🤔 Not quite',
                           'A balloon only hovers when buoyancy and gravity are exactly balanced. '
                           'With helium inside, buoyancy wins and the balloon rises.'),
    }
    scenes = [release]
    for scene_id, (title, text) in endings.items():
        scene = builder.create_quick_scene(title, text, [])
        scene.id = scene_id
        scene.is_ending = True
        scenes.append(scene)

    objectives = ['Understand buoyant force', 'Compare different forces']
    return NarrativeActivity(
        id='quick_physics_demo',
        title='🧪 Quick physics demo',
        description='A short demo of the narrative engine with physics content',
        starting_scene_id=release.id,
        available_scenes=scenes,
        educational_objectives=list(objectives),
        max_choices=3,
        content={'subject': 'physics', 'grade': 6},
        points=SceneBuilder.calculate_total_points(scenes),
        difficulty=DifficultyLevel.EASY,
        learning_objectives=list(objectives),
    )


def _physics_content(concept: str, explanation: str, examples: list[str]) -> EducationalContent:
    return EducationalContent(
        concept=concept,
        explanation=explanation,
        examples=examples,
        difficulty=DifficultyLevel.HARD,
        subject='physics',
    )


def build_physics_demo() -> NarrativeActivity:
    """Hand-authored tower-building adventure."""
    scenes = [
        Scene(
            id='tower_intro',
            title='🏗️ The building project',
            location='Construction site of the school tower',
            description='Start of an ambitious construction project',
            text='You stand in front of the foundations of a new school tower. As chief engineer you must '
                 'design a tower that is safe and useful, taking the pull of gravity on every part into account.',
            choices=[
                Choice(
                    id='analyze_foundation',
                    text='Analyse the load on the foundations',
                    description='Work out how gravity acts on the whole structure',
                    next_scene_id='foundation_analysis',
                    points=25,
                    actions=[GameAction(ActionType.ADD_ITEM, 'foundation_plans', True,
                                        '📐 You obtained the foundation plans')],
                    educational_feedback='Well done! Analysing the foundations is key to a safe building.',
                    difficulty=DifficultyLevel.HARD,
                ),
                Choice(
                    id='choose_materials',
                    text='Choose the building materials',
                    description='Decide on materials with their weight in mind',
                    next_scene_id='material_selection',
                    points=20,
                    actions=[GameAction(ActionType.MODIFY_RELATIONSHIP, 'site_manager', 1)],
                    educational_feedback='Good choice! The mass of the materials determines the gravitational load.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
                Choice(
                    id='start_building',
                    text='Start building right away',
                    description='Get going without detailed preparation',
                    next_scene_id='hasty_building',
                    points=5,
                    actions=[GameAction(ActionType.MODIFY_RELATIONSHIP, 'site_manager', -1,
                                        '😟 The site manager looks worried')],
                    consequence='Your eagerness is commendable, but engineering projects need careful planning!',
                    educational_feedback='In engineering, planning matters as much as the building itself.',
                    difficulty=DifficultyLevel.EASY,
                ),
            ],
            educational_content=_physics_content(
                'Gravity in structures',
                'Gravity pulls every object with mass downwards. Builders must account for the '
                'gravitational load that affects the stability and safety of a structure.',
                ['Calculating the load on foundations', 'Choosing materials by density',
                 'Designing supporting structures'],
            ),
        ),
        Scene(
            id='foundation_analysis',
            title='📐 Foundation analysis',
            location='Engineering office',
            description='Detailed calculations of the gravitational load',
            text='You sit at a desk covered in equations and the tower plans. You need to work out the force '
                 'gravity will exert on the foundations for a given height and material.',
            choices=[
                Choice(
                    id='calculate_steel',
                    text='Calculate the load for a steel frame',
                    description='Use the density of steel (7850 kg/m³)',
                    next_scene_id='tower_testing',
                    points=30,
                    actions=[
                        GameAction(ActionType.ADD_ITEM, 'steel_calculations', True,
                                   '🔧 You finished the steel calculations'),
                        GameAction(ActionType.SET_FLAG, 'material_choice', 'steel'),
                    ],
                    educational_feedback='Excellent! Steel is strong but heavy, so the load will be considerable.',
                    difficulty=DifficultyLevel.HARD,
                ),
                Choice(
                    id='calculate_concrete',
                    text='Calculate the load for reinforced concrete',
                    description='Use the density of concrete (2400 kg/m³)',
                    next_scene_id='tower_testing',
                    points=25,
                    actions=[GameAction(ActionType.SET_FLAG, 'material_choice', 'concrete')],
                    educational_feedback='Good! Concrete is lighter than steel but needs a wider base.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
            ],
        ),
        Scene(
            id='material_selection',
            title='🧱 Material selection',
            location='Materials warehouse',
            description='Choosing materials for the tower',
            text='Samples of steel, concrete and aluminium line the warehouse shelves. '
                 'The site manager waits for your decision.',
            choices=[
                Choice(
                    id='lightweight_materials',
                    text='Go for lightweight aluminium',
                    next_scene_id='tower_testing',
                    points=15,
                    actions=[
                        GameAction(ActionType.SET_FLAG, 'material_choice', 'aluminium'),
                        GameAction(ActionType.ADD_POINTS, 'efficiency', 5, '⚡ Bonus for saving weight!'),
                    ],
                    educational_feedback='A lighter tower puts less load on the foundations.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
                Choice(
                    id='balanced_materials',
                    text='Combine a steel frame with concrete floors',
                    next_scene_id='tower_testing',
                    points=20,
                    actions=[GameAction(ActionType.SET_FLAG, 'material_choice', 'steel')],
                    educational_feedback='A balanced design trades strength against weight.',
                    difficulty=DifficultyLevel.HARD,
                ),
            ],
        ),
        Scene(
            id='hasty_building',
            title='🚧 Trouble on site',
            location='Construction site',
            description='Consequences of building without a plan',
            text='The first floor is up, but cracks are already appearing in the walls. '
                 'The site manager asks what went wrong.',
            choices=[
                Choice(
                    id='rebuild_properly',
                    text='Stop and choose the materials properly',
                    next_scene_id='material_selection',
                    points=10,
                    actions=[GameAction(ActionType.MODIFY_RELATIONSHIP, 'site_manager', 2,
                                        '🤝 The site manager appreciates your honesty')],
                    difficulty=DifficultyLevel.MEDIUM,
                ),
                Choice(
                    id='ask_professor',
                    text='Ask the physics professor for help with the calculations',
                    next_scene_id='foundation_analysis',
                    points=10,
                    actions=[GameAction(ActionType.MODIFY_RELATIONSHIP, 'professor', 2)],
                    educational_feedback='Asking an expert is a smart way to learn.',
                    difficulty=DifficultyLevel.EASY,
                ),
            ],
        ),
        Scene(
            id='tower_testing',
            title='🪂 Drop tests',
            location='Top of the finished tower',
            description='Testing free fall from the tower',
            text='The tower stands. From the top floor you can test how objects of different masses fall.',
            choices=[
                Choice(
                    id='drop_test',
                    text='Drop a light and a heavy ball at the same time',
                    next_scene_id='drop_results',
                    points=20,
                    educational_feedback='Without air resistance, both balls land at the same time.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
                Choice(
                    id='measure_time',
                    text='Measure the fall time precisely using the height from the plans',
                    next_scene_id='drop_results',
                    conditions=[SceneCondition(ConditionType.ITEM, 'foundation_plans', True, ConditionOperator.EQ)],
                    points=30,
                    actions=[GameAction(ActionType.ADD_ITEM, 'stopwatch_data', True,
                                        '⏱️ You recorded precise fall times')],
                    educational_feedback='With h = ½gt² you can check g from your measurements.',
                    difficulty=DifficultyLevel.HARD,
                ),
                Choice(
                    id='report_to_manager',
                    text='Report the tower ready to the site manager',
                    next_scene_id='project_completion',
                    conditions=[SceneCondition(ConditionType.RELATIONSHIP, 'site_manager', 1, ConditionOperator.GE)],
                    points=15,
                    actions=[GameAction(ActionType.UNLOCK_SCENE, 'project_completion')],
                    difficulty=DifficultyLevel.EASY,
                ),
            ],
            conditions=[SceneCondition(ConditionType.FLAG, 'material_choice', None, ConditionOperator.NE)],
            educational_content=_physics_content(
                'Free fall',
                'In free fall every object accelerates at g ≈ 9.81 m/s² regardless of its mass.',
                ['Galileo and the leaning tower of Pisa', 'Measuring g with a stopwatch'],
            ),
        ),
        Scene(
            id='drop_results',
            title='📊 Results',
            location='Tower observation deck',
            description='Interpreting the drop tests',
            text='You look over your notes. What do the drop tests tell you?',
            choices=[
                Choice(
                    id='same_acceleration',
                    text='All objects fall with the same acceleration',
                    next_scene_id='project_completion',
                    points=20,
                    educational_feedback='Correct! Mass does not change gravitational acceleration.',
                    difficulty=DifficultyLevel.MEDIUM,
                ),
                Choice(
                    id='heavier_faster',
                    text='Heavier objects fall faster',
                    next_scene_id='tower_rethink',
                    points=0,
                    educational_feedback='A common misconception: without air resistance mass does not matter.',
                    difficulty=DifficultyLevel.EASY,
                ),
            ],
        ),
        Scene(
            id='project_completion',
            title='🏆 The tower is complete',
            location='Opening ceremony',
            description='Successful end of the project',
            text='The school tower opens to applause. Your understanding of gravity made it safe and sound.',
            is_ending=True,
            rewards=[
                SceneReward('badge', 'master_engineer', '🏅 You earned the Master Engineer badge!'),
                SceneReward('xp', 150, '⭐ 150 bonus XP!'),
            ],
        ),
        Scene(
            id='tower_rethink',
            title='🔁 Back to the drawing board',
            location='Engineering office',
            description='The conclusions need another look',
            text='The professor gently points out a flaw in your reasoning. Time to revisit free fall.',
            is_ending=True,
            rewards=[SceneReward('xp', 50, '⭐ 50 XP for trying!')],
        ),
    ]

    return NarrativeActivity(
        id='physics_tower_gravity',
        title='🏗️ Building a tower with gravity',
        description='A physics adventure combining construction, measurement and gravity experiments',
        starting_scene_id='tower_intro',
        available_scenes=scenes,
        educational_objectives=[
            'Apply the laws of gravity to construction',
            'Relate material density to structural load',
            'Show that free fall does not depend on mass',
        ],
        max_choices=SceneBuilder.calculate_max_choices(20),
        content={'theme': 'engineering', 'subject': 'physics', 'grade': 9},
        points=SceneBuilder.calculate_total_points(scenes),
        difficulty=DifficultyLevel.HARD,
        learning_objectives=[
            'Apply the laws of gravity to construction',
            'Relate material density to structural load',
            'Show that free fall does not depend on mass',
        ],
    )
