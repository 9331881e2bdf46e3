"""
Prompt construction for tailored resume generation.

One prompt strategy is used: ATS-optimised, project-focused achievements.
Every work experience gets ACHIEVEMENTS_PER_EXPERIENCE bullets of
ACHIEVEMENT_MIN_WORDS-ACHIEVEMENT_MAX_WORDS words: the first PROJECT_ACHIEVEMENTS
are project stories, the rest are strategic keyword achievements.
"""
import json
from typing import Sequence

from resume_tailor.models_db import Profile, WorkExperience, Education

ACHIEVEMENTS_PER_EXPERIENCE = 6
PROJECT_ACHIEVEMENTS = 2
ACHIEVEMENT_MIN_WORDS = 50
ACHIEVEMENT_MAX_WORDS = 70
SKILL_CATEGORIES_MIN = 8
SKILL_CATEGORIES_MAX = 12

STRATEGIC_FOCUS = [
    "Leadership & Team Management: team size, mentoring and soft skills from the job description",
    "Cross-functional Collaboration: stakeholder work described in the posting's business language",
    "Process Optimization: methodologies from the job description and the efficiency gained",
    "Technical Excellence: quality practices, standards and code review from the posting",
]

SYSTEM_PROMPT = (
    "You are an expert ATS optimization specialist and technical resume writer. "
    "Create project-focused resumes with detailed, quantified achievements and strategic keyword "
    "integration. Always extract REAL technology names from job descriptions - never use placeholder "
    "text. Return ONLY valid JSON without any markdown formatting."
)

ANTHROPIC_SUFFIX = """

CRITICAL INSTRUCTIONS:
- Return ONLY valid JSON without any markdown formatting, code blocks, or additional text
- Extract REAL technology names from the job description - never use placeholder text
- The response must start with { and end with }"""


def format_date(value) -> str:
    return value.isoformat() if value else ""


def _work_line(index: int, work: WorkExperience) -> str:
    end = "Present" if work.is_current else format_date(work.end_date)
    return (
        f"{index}. {work.company} - {work.position}\n"
        f"   Duration: {format_date(work.start_date)} to {end}"
    )


def _education_line(edu: Education) -> str:
    return f"- {edu.university} - {edu.degree} ({format_date(edu.start_date)} to {format_date(edu.end_date)})"


def _achievement_slots() -> list:
    slots = []
    for i in range(PROJECT_ACHIEVEMENTS):
        slots.append(
            f"[PROJECT ACHIEVEMENT {i + 1}: {ACHIEVEMENT_MIN_WORDS}-{ACHIEVEMENT_MAX_WORDS} words - "
            "realistic project name aligned with the job description, your role, the challenge, "
            "the solution using technologies from the posting, and quantified impact]"
        )
    for focus in STRATEGIC_FOCUS[:ACHIEVEMENTS_PER_EXPERIENCE - PROJECT_ACHIEVEMENTS]:
        slots.append(f"[{focus}; {ACHIEVEMENT_MIN_WORDS}-{ACHIEVEMENT_MAX_WORDS} words]")
    return slots


def output_schema(work_experiences: Sequence[WorkExperience]) -> str:
    """JSON skeleton the provider must fill, one entry per stored work experience."""
    slots = _achievement_slots()
    skeleton = {
        "professionalTitle": "[Exact Job Title from Posting] | [Primary Tech Stack from Job Description]",
        "professionalSummary": "[4-5 sentences, 100-150 words, naturally integrating keywords from the job description]",
        "workExperiences": [
            {"company": work.company, "achievements": slots}
            for work in work_experiences
        ],
        "technicalSkills": [
            "Category Name: technology, technology, technology",
        ],
    }
    return json.dumps(skeleton, indent=2)


def build_resume_prompt(
    job_description: str,
    profile: Profile,
    work_experiences: Sequence[WorkExperience],
    educations: Sequence[Education],
) -> str:
    work_lines = "\n".join(_work_line(i + 1, w) for i, w in enumerate(work_experiences)) or "None provided"
    edu_lines = "\n".join(_education_line(e) for e in educations) or "None provided"

    return f"""Create a comprehensive, project-focused resume tailored to the job description below.

JOB DESCRIPTION TO ANALYZE:
{job_description}

USER PROFILE:
Name: {profile.name}
Email: {profile.email}
Phone: {profile.phone}
Location: {profile.location}

WORK EXPERIENCES:
{work_lines}

EDUCATION:
{edu_lines}

RESUME STRATEGY:

1. PROFESSIONAL TITLE & SUMMARY:
   - Title: use the exact job title plus the primary tech stack from the job description
   - Summary: start with experience level and role alignment, highlight the top technical skills,
     end with a value proposition in the posting's language

2. ACHIEVEMENTS:
   Generate exactly {ACHIEVEMENTS_PER_EXPERIENCE} achievements per work experience, each {ACHIEVEMENT_MIN_WORDS}-{ACHIEVEMENT_MAX_WORDS} words.
   - {PROJECT_ACHIEVEMENTS} project achievements: project name, role, challenge, solution, quantified impact
   - {ACHIEVEMENTS_PER_EXPERIENCE - PROJECT_ACHIEVEMENTS} strategic achievements covering leadership, collaboration, process and quality

3. TECHNICAL SKILLS:
   - Extract every programming language, framework, tool, platform and methodology in the job description
   - Group them into {SKILL_CATEGORIES_MIN}-{SKILL_CATEGORIES_MAX} categories formatted as "Category: item, item, item"
   - Use the exact terminology from the posting; never output placeholder text

Return one entry in "workExperiences" for ALL {len(work_experiences)} work experiences, in the order listed above.

IMPORTANT: Return ONLY valid JSON without any markdown formatting, code blocks, or additional text. The response must start with {{ and end with }}.

{output_schema(work_experiences)}
"""
