"""Prompt templates for roadmap generation, chat and roadmap improvement.

Each provider gets its own intro and JSON format block; the categories,
task types and resource keys differ so that the answer reflects the
provider's strength.
"""

JSON_FORMAT_INTRO = "\n\nPlease structure your response as a JSON object with this exact format:\n"

ROADMAP_FORMAT_TEMPLATE = """{{
  "title": "Brief title for the roadmap",
  "description": "2-3 sentence description",
  "difficulty": "beginner|intermediate|advanced",
  "estimatedDuration": "X-Y weeks/months",
  "aiProvider": "{provider}",
  "category": "{category}",
  "modules": [
    {{
      "id": "1",
      "title": "Module title",
      "description": "Module description",
      "completed": false,
      "difficulty": "Easy|Medium|Hard",
      "estimatedTime": "X hours",
      "tasks": [
        {{
          "id": "1-1",
          "title": "Task title",
          "completed": false,
          "difficulty": "Easy|Medium|Hard",
          "type": "{task_types}",
          "estimatedTime": "X minutes",
          "description": "Detailed task description",
          "learningObjectives": ["Objective 1", "Objective 2"],
          "prerequisites": ["Prerequisite 1"],
          "resources": {{
{resources},
            "youtubeSearch": "search query for YouTube videos"
          }}
        }}
      ]
    }}
  ]
}}"""

PROVIDER_PROMPTS = {
    "openai": {
        "intro": 'Create a comprehensive learning roadmap for: "{topic}" in TUF Striver\'s A2Z DSA sheet format.',
        "category": "Category (DSA/Development/Design/etc)",
        "task_types": "Theory|Practice|Project",
        "resources": [
            ("articles", "Article title"),
            ("documentation", "Doc link"),
            ("practice", "Platform/Problem name"),
        ],
        "guidelines": """Guidelines:
- For DSA topics: Include algorithm complexity, implementation patterns, common interview questions
- For Development: Include practical projects, frameworks, best practices
- For each task, provide specific YouTube search queries that will help find relevant educational videos
- Structure like Striver's A2Z DSA sheet with clear progression from Easy to Hard
- Include estimated time for each task and module
- Make it comprehensive with 6-10 modules and 4-8 tasks per module
- Focus on practical learning with hands-on exercises""",
    },
    "gemini": {
        "intro": 'Create a comprehensive learning roadmap for: "{topic}" with creative and practical approaches.',
        "category": "Category (Creative/Design/Development/etc)",
        "task_types": "Theory|Practice|Project|Creative",
        "resources": [
            ("articles", "Article title"),
            ("tools", "Tool name"),
            ("practice", "Exercise name"),
        ],
        "guidelines": "Focus on creative and practical learning approaches with hands-on projects. Include 6-8 modules and 4-6 tasks per module.",
    },
    "perplexity": {
        "intro": 'Create a comprehensive learning roadmap for: "{topic}" with the most current and up-to-date resources.',
        "category": "Category",
        "task_types": "Theory|Practice|Research|Current",
        "resources": [
            ("articles", "Latest article title"),
            ("trends", "Current trend"),
            ("research", "Research paper/link"),
        ],
        "guidelines": "Focus on current trends, latest tools, and up-to-date industry practices. Include 6-8 modules and 4-6 tasks per module.",
    },
}

CHAT_SYSTEM_PROMPT = (
    "You are a helpful learning assistant. Provide clear, educational responses."
)
PERPLEXITY_CHAT_SYSTEM_PROMPT = (
    "You are a helpful learning assistant. "
    "Provide clear, educational responses with current information."
)

IMPROVEMENT_PROMPT_TEMPLATE = """
    Analyze this learning roadmap and suggest improvements:

    Title: {title}
    Description: {description}
    Current Modules: {module_count}

    User Feedback: {feedback}

    Please provide specific suggestions for:
    1. Missing topics or skills
    2. Better resource recommendations
    3. Improved learning sequence
    4. Additional practical projects
    """

IMPROVEMENT_CONTEXT = "roadmap improvement"


def build_roadmap_prompt(provider: str, topic: str) -> str:
    """Return the full generation prompt of ``provider`` for ``topic``."""
    config = PROVIDER_PROMPTS[provider]
    resources = ",\n".join(
        f'            "{key}": ["{example}"]' for key, example in config["resources"]
    )
    json_format = ROADMAP_FORMAT_TEMPLATE.format(
        provider=provider,
        category=config["category"],
        task_types=config["task_types"],
        resources=resources,
    )
    return (
        config["intro"].format(topic=topic)
        + JSON_FORMAT_INTRO
        + json_format
        + "\n\n"
        + config["guidelines"]
    )


def build_chat_user_content(message: str, context: str) -> str:
    return f"Context: {context}\n\nQuestion: {message}"


def build_improvement_prompt(roadmap: dict, feedback: str | None = None) -> str:
    return IMPROVEMENT_PROMPT_TEMPLATE.format(
        title=roadmap.get("title", ""),
        description=roadmap.get("description", ""),
        module_count=len(roadmap.get("modules") or []),
        feedback=feedback or "No specific feedback provided",
    )
