# chainport/chains/prompts.py
"""
Prompt text for chain steps.

Compiled chains send the step's instructions and required output as the
system message and the running value as the user message. The verifying
variant adds directives to show work and re-check arithmetic.
"""

from typing import List

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

STEP_SYSTEM_PROMPT = """Instructions: {instructions}

Required output format: {required_output}

Process the user input according to these instructions and return a result in the required format."""

CALCULATION_RULES = """

IMPORTANT CALCULATION RULES:
1. If this involves math, show complete step-by-step work
2. Calculate all operations fully - don't leave expressions unevaluated
3. For addition/subtraction/etc, show the actual result (e.g., "25 + 20 = 45" not just "25 + 20")
4. Double-check your calculations for accuracy
5. Always provide the final calculated value"""

VERIFICATION_STEP = """

VERIFICATION STEP: Before providing your final answer:
1. Review your calculations and logic
2. Check for arithmetic errors
3. Make sure all operations have been fully computed
4. Ensure the final result is clearly stated"""

# Single-step tester, used before a chain is compiled
DESIGN_SYSTEM_PROMPT = "You are a helpful assistant."

DESIGN_USER_PROMPT = """You are an expert assistant.

Input Statement:
{input_statement}

Instructions:
{instructions}

Required Output:
{required_output}

Please provide the output as requested."""


def build_step_messages(
    instructions: str,
    required_output: str,
    current_input: str,
    verify: bool = False,
) -> List[BaseMessage]:
    if verify:
        instructions = f"{instructions}{CALCULATION_RULES}\n\nInput: {current_input}"
    system = STEP_SYSTEM_PROMPT.format(instructions=instructions, required_output=required_output)
    if verify:
        system += VERIFICATION_STEP
    return [SystemMessage(content=system), HumanMessage(content=current_input)]


def build_design_messages(input_statement: str, instructions: str, required_output: str) -> List[BaseMessage]:
    user = DESIGN_USER_PROMPT.format(
        input_statement=input_statement,
        instructions=instructions,
        required_output=required_output,
    )
    return [SystemMessage(content=DESIGN_SYSTEM_PROMPT), HumanMessage(content=user)]
