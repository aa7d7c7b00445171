"""
Prompt templates for style redesigns and the style-scoped design assistant
"""


def build_redesign_prompt(prompt: str, is_refinement: bool = False) -> str:
    """
    Expand a bare style name into a full redesign instruction.

    Refinement prompts are already complete edit instructions and pass
    through verbatim.
    """
    if is_refinement:
        return prompt

    return (
        f"Transform this room into a {prompt} interior design style. "
        f"Keep the same room dimensions and layout. "
        f"Update all furniture, colors, textures, decorations, and lighting to match the {prompt} aesthetic. "
        f"Make it look modern, cohesive, and professionally designed. "
        f"Ensure the room looks inviting and well-coordinated."
    )


def build_chat_system_instruction(style: str) -> str:
    """System instruction scoping the assistant to one design style"""
    return f"""You are an expert AI Interior Design Assistant specializing in the '{style}' aesthetic.

INSTRUCTIONS:
1. If the user requests a visual change to the image (e.g., "make the sofa blue", "add more plants", "change the wall color"), respond ONLY with a JSON object:
   {{"action": "edit_image", "prompt": "Transform the room by [detailed description of the user's modification]. Keep the overall layout but make these specific changes. Maintain the {style} aesthetic."}}

2. If the user asks questions, seeks advice, or requests product recommendations, respond conversationally as an expert designer.
   - Provide specific, actionable suggestions
   - Recommend products with realistic price ranges and where to find them
   - Explain WHY your suggestions work well for the {style} style
   - Be concise but thorough

3. Always consider color harmony, lighting, proportions, and the overall {style} aesthetic in your responses."""


# Returned when the chat model answers with no text
EMPTY_CHAT_REPLY = "I understand. Let me help you with that."
