"""Sample content written on a deployment's first run."""

from typing import List, Tuple

from ..models import CommentCreate, FeedbackCreate, StoryCreate

# Presence of this story means sample content has already been written
SENTINEL_STORY_ID = "sample-story-1"

SAMPLE_STORIES: List[Tuple[str, StoryCreate]] = [
    (
        SENTINEL_STORY_ID,
        StoryCreate(
            title="My First Steps in Bharatanatyam",
            content=(
                "I remember my first Bharatanatyam class like it was yesterday. The vibrant "
                "colors of the studio, the rhythmic beats of the natuvangam, and the graceful "
                "movements of my teacher captivated me instantly. I was just five years old, "
                "and the world of classical dance opened up before me.\n\n"
                "Learning the basic adavus (steps) felt challenging at first, but with each "
                "practice, I felt a growing connection to this ancient art form. The intricate "
                "hand gestures (mudras) and facial expressions (abhinaya) fascinated me, "
                "allowing me to tell stories without words. My teacher, Guru Smt. Padma Devi, "
                "always emphasized the importance of bhavam (expression) and laya (rhythm).\n\n"
                "One of my earliest memories is performing a short piece at a local community "
                "event. I was nervous, but the applause and encouragement from the audience "
                "filled me with immense joy. It was then I knew that dance would be a "
                "significant part of my life's journey. This art form has taught me "
                "discipline, patience, and the beauty of storytelling through movement."
            ),
            image_url="https://placehold.co/800x600/FFD700/8B4513?text=First+Steps",
        ),
    ),
    (
        "sample-story-2",
        StoryCreate(
            title="The Joy of Expressing Emotions",
            content=(
                "Bharatanatyam is not just about steps and poses; it's about conveying "
                "emotions and narratives. I've always found immense joy in the abhinaya "
                "aspect of the dance. Being able to portray different characters, from a "
                "mischievous Krishna to a loving Yashoda, or a fierce Durga, allows me to "
                "explore a spectrum of human feelings.\n\n"
                "One particular piece, a Varnam, truly challenged me to delve deep into "
                "emotional expression. It required me to switch between various moods and "
                "characters rapidly, demanding both technical precision and emotional depth. "
                "It was exhausting but incredibly rewarding. The audience's reactions, "
                "especially when they connected with the story I was telling, made every "
                "hour of practice worthwhile.\n\n"
                "Dance has become my language, a way to communicate what words sometimes "
                "cannot. It's a journey of self-discovery and a continuous learning process, "
                "always pushing me to refine my craft and connect more deeply with the art."
            ),
            image_url="https://placehold.co/800x600/ADD8E6/000080?text=Expressing+Emotions",
        ),
    ),
    (
        "sample-story-3",
        StoryCreate(
            title="Preparing for My Arangetram",
            content=(
                "The Arangetram, my solo debut performance, is a monumental milestone in a "
                "Bharatanatyam dancer's life. The preparations have been intense, filled "
                "with countless hours of practice, refining every movement, every "
                "expression. My days are a blend of school, homework, and rigorous dance "
                "rehearsals.\n\n"
                "There's a mix of excitement and nervousness. I'm excited to present years "
                "of learning and dedication on stage, to share my passion with family and "
                "friends. But there's also the pressure to perform flawlessly, to honor my "
                "Guru and the art form itself.\n\n"
                "My parents have been incredibly supportive, driving me to classes, helping "
                "me with costumes, and cheering me on. My Guru has guided me with immense "
                "patience and wisdom, pushing me to my limits while nurturing my artistic "
                "growth. This journey has been a testament to perseverance, and I can't wait "
                "to step onto that stage and offer my heartfelt performance."
            ),
            image_url="https://placehold.co/800x600/98FB98/228B22?text=Arangetram+Prep",
        ),
    ),
]

# (user_id, feedback)
SAMPLE_FEEDBACK: List[Tuple[str, FeedbackCreate]] = [
    (
        "sample-user-1",
        FeedbackCreate(
            name="Priya Sharma",
            email="priya.s@example.com",
            message="Gayathri, your dedication shines through! Wishing you all the best for your debut.",
        ),
    ),
    (
        "sample-user-2",
        FeedbackCreate(
            name="Rajesh Kumar",
            email="",
            message="Such a talented young dancer. Looking forward to seeing your photos and stories!",
        ),
    ),
]

# (user_id, comment), all on the sentinel story
SAMPLE_COMMENTS: List[Tuple[str, CommentCreate]] = [
    (
        "sample-user-3",
        CommentCreate(
            story_id=SENTINEL_STORY_ID,
            comment_text="This is so inspiring, Gayathri! Keep dancing!",
            commenter_name="Auntie Meena",
        ),
    ),
    (
        "sample-user-4",
        CommentCreate(
            story_id=SENTINEL_STORY_ID,
            comment_text="What a beautiful journey! Your passion is evident.",
            commenter_name="Dance Lover",
        ),
    ),
]
