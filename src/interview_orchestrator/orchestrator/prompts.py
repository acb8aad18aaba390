"""
interview_orchestrator.orchestrator.prompts

Prompt builders for every call the orchestrator makes to the text-generation service.

Responsibilities:
- Render persona traits, windowed history, rolling summary and in-character rules.
- Keep sampling parameters next to the prompt they belong to.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from interview_orchestrator.orchestrator.models import InstructorPolicy, Message, Persona


@dataclass(frozen=True, slots=True)
class Sampling:
    max_tokens: int
    temperature: float


CLASSIFICATION_SAMPLING = Sampling(max_tokens=120, temperature=0.2)
MEMORY_SAMPLING = Sampling(max_tokens=150, temperature=0.3)
CONSENSUS_SAMPLING = Sampling(max_tokens=200, temperature=0.3)


def reply_sampling(policy: InstructorPolicy, *, collaborative: bool) -> Sampling:
    if policy.personality_emphasis:
        temperature = 0.85
    else:
        temperature = 0.8 if collaborative else 0.75
    default_tokens = 250 if collaborative else 300
    if policy.max_response_length:
        tokens = max(1, min(300, policy.max_response_length // 4))
        return Sampling(max_tokens=tokens, temperature=temperature)
    return Sampling(max_tokens=default_tokens, temperature=temperature)


def render_history(messages: Sequence[Message]) -> str:
    return "\n".join(f"{m.speaker_label()}: {m.content}" for m in messages)


def history_window(policy: InstructorPolicy, *, cap: int) -> int:
    return min(cap, policy.summary_interval)


def _goal_label(goal: str) -> str:
    return goal.replace("_", " ")


def classification_prompt(*, question: str, roster: Sequence[Persona], summary: str) -> str:
    personas = ", ".join(f"{p.name} ({p.role})" for p in roster)
    return f"""Analyze this student interview question:

QUESTION: "{question}"
AVAILABLE PERSONAS: {personas}
CONVERSATION SUMMARY: {summary}

Determine the main topic and provide structured analysis.
Format your response as: TOPIC:[single_word] | GENERAL:[yes/no] | CONFIDENCE:[0-1] | REASONING:[brief_explanation]

Question: "{question}\""""


def memory_prompt(*, messages: Sequence[Message], summary: str) -> str:
    return f"""Summarize this interview conversation focusing on key topics, student interests, and persona contributions. Keep it concise (2-3 sentences):

CONVERSATION:
{render_history(messages)}

CURRENT SUMMARY: {summary}

Provide an updated summary that captures the main themes and progression:"""


def consensus_prompt(*, goal: str, discussion: Sequence[Message]) -> str:
    text = "\n\n".join(f"{m.speaker_label()}: {m.content}" for m in discussion)
    return f"""Based on this team discussion, provide a consolidated summary of the team's decisions and consensus:

COLLABORATION GOAL: {goal}

TEAM DISCUSSION:
{text}

Please provide:
1. What the team agreed on (consensus points)
2. Any remaining disagreements or open issues
3. The recommended approach/solution

Format as a brief team summary (2-3 sentences):"""


def _length_instruction(policy: InstructorPolicy, *, collaborative: bool) -> str:
    if policy.max_response_length:
        if collaborative:
            return f"- Keep your response under {policy.max_response_length} characters"
        return (
            f"- Keep your response under {policy.max_response_length} characters\n"
            "- Be concise while maintaining your personality and role authenticity"
        )
    if collaborative:
        return "- Keep responses 2-4 sentences for natural team discussion flow"
    return "- Keep responses 2-4 sentences for natural conversation flow"


def individual_prompt(
    *,
    persona: Persona,
    question: str,
    history: Sequence[Message],
    context: str,
    summary: str,
    policy: InstructorPolicy,
) -> str:
    trait = persona.personality
    if policy.personality_emphasis:
        personality = (
            f'- CRITICAL: Your personality trait of "{trait}" must strongly influence your tone, '
            "word choice, and approach\n"
            f'- Make sure your personality trait "{trait}" shows in how you speak, your phrasing, '
            "and emotional tone\n"
            "- For example, if you're cautious, hedge your statements. If bold, make confident "
            "assertions\n"
            f'- Let your "{trait}" nature be evident in every sentence you write\n'
            "- Your communication style should reflect your personality prominently"
        )
    else:
        personality = f'- Reflect your personality trait of "{trait}" in your tone and approach'

    return f"""You are {persona.name}, a {persona.role}. Here are your characteristics:

ROLE: {persona.role}
GOAL: {persona.goal}
CONCERNS: {persona.concerns}
PERSONALITY: {trait}

CONTEXT: {context}
CONVERSATION THEMES: {summary}

CRITICAL INSTRUCTIONS:
- Stay completely in character as {persona.name}
- NEVER mention you are an AI, language model, or chatbot
- Speak as if you are a real person in this role
{personality}
- Draw from your specific goals, concerns, and personality when responding
- Be conversational and natural, showing your unique perspective
- Provide specific examples from your work experience when relevant
- DO NOT claim to have "discussed with colleagues" unless there are actual prior responses from teammates in this conversation
{_length_instruction(policy, collaborative=False)}

CONVERSATION HISTORY:
{render_history(history)}

CURRENT QUESTION: {question}

Respond as {persona.name} would, fully embodying your role and personality:"""


def collaborative_prompt(
    *,
    persona: Persona,
    question: str,
    history: Sequence[Message],
    context: str,
    policy: InstructorPolicy,
    goal: str,
    consensus_items: Sequence[str],
    prior_replies: str,
    first_speaker: bool,
    challenge: bool,
) -> str:
    label = _goal_label(goal)
    trait = persona.personality

    if first_speaker:
        instruction = (
            f"- You are starting a team discussion to achieve: {label}\n"
            "- Present your initial perspective clearly and specifically\n"
            "- Set up the foundation for your teammates to build upon\n"
            "- Be specific about your role's unique viewpoint and recommendations"
        )
    elif challenge:
        instruction = (
            "- Your teammates have shared their thoughts (see below)\n"
            "- You may respectfully challenge or offer alternatives to their suggestions\n"
            "- Provide constructive criticism and propose better solutions\n"
            '- Reference what others said specifically (e.g., "I disagree with [Name] about X '
            'because...")\n'
            "- Work toward a better collaborative solution"
        )
    else:
        instruction = (
            "- Your teammates have already shared their thoughts (see below)\n"
            "- Build on their ideas - don't just repeat what they said\n"
            "- Add your unique perspective, clarify points, or extend their suggestions\n"
            '- Reference what others said when relevant (e.g., "Building on [Name]\'s point '
            'about...")\n'
            f"- Help the team reach consensus on {label}"
        )

    if policy.personality_emphasis:
        personality = (
            f'- Your personality trait of "{trait}" should influence how you collaborate and '
            "negotiate\n"
            f'- Let your "{trait}" nature shape how you interact with teammates'
        )
    else:
        personality = f'- Show your personality trait of "{trait}" in how you collaborate'

    consensus = (
        f"\nEMERGING TEAM CONSENSUS: {', '.join(consensus_items)}" if consensus_items else ""
    )
    teammates = f"TEAMMATES' RESPONSES SO FAR:\n{prior_replies}\n\n" if prior_replies else ""

    return f"""You are {persona.name}, a {persona.role}, participating in a COLLABORATIVE TEAM DISCUSSION.

YOUR CHARACTERISTICS:
ROLE: {persona.role}
GOAL: {persona.goal}
CONCERNS: {persona.concerns}
PERSONALITY: {trait}

SHARED TEAM GOAL: The team must produce a unified {label} recommendation.
CONTEXT: {context}
STUDENT'S QUESTION: {question}
{consensus}

{teammates}COLLABORATION INSTRUCTIONS:
{instruction}
{personality}
{_length_instruction(policy, collaborative=True)}

CRITICAL RULES:
- Stay completely in character as {persona.name}
- NEVER mention you are an AI, language model, or chatbot
- This is a real team discussion - interact naturally with your colleagues
- The team must reach a specific conclusion about {label}
- Feel free to ask questions, challenge ideas constructively, or build consensus
- Only claim to have "discussed with colleagues" if teammates actually spoke before you
- Be conversational and show how your role adds unique value to the team decision

CONVERSATION HISTORY:
{render_history(history)}

Respond as {persona.name} in this collaborative team discussion, working toward the shared goal:"""


def fallback_reply(persona: Persona, rng: random.Random) -> str:
    lines = (
        f"As a {persona.role}, I approach this with my {persona.personality} perspective...",
        f"That's an interesting question. Given my {persona.personality} nature and role as a "
        f"{persona.role}...",
        f"Let me share how this connects to what I focus on: {persona.goal[:60]}...",
        f"This touches on something I think about often in my work as a {persona.role}...",
    )
    return rng.choice(lines)


# --- Module Notes -----------------------------------------------------------
# Prompt wording is product behavior: the validator and the confidence heuristics assume
# replies were requested with these in-character rules.
