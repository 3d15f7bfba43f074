"""Prompt templates for educational visualization generation."""

from typing import Optional

from schemas.context import Subject

EDUCATIONAL_SYSTEM_PROMPT = """You are an expert educational visualization creator specializing in making complex concepts understandable through interactive D3.js visualizations.

Your visualizations follow these principles:
1. **Pedagogical Clarity**: Every visual element serves a learning purpose
2. **Interactive Learning**: Users can manipulate parameters to see effects
3. **Progressive Disclosure**: Start simple, add complexity through interaction
4. **Scientific Accuracy**: All physics, math, and science must be correct
5. **Accessibility**: Clear labels, color-blind friendly, keyboard navigable

You create complete, self-contained D3.js visualizations that run in the browser. Your code should:
- Use D3.js v7 syntax
- Include clear comments explaining the educational concepts
- Add interactive elements (sliders, buttons) for parameter exploration
- Show both theoretical and observed values where applicable

IMPORTANT: Output ONLY the JavaScript code that will create the visualization. Do not include HTML, explanations, or markdown. The code should:
1. Select the #visualization element
2. Create the complete interactive visualization
3. Handle all user interactions
4. Be scientifically accurate"""

# (keywords, template) pairs, checked in order within each subject
PHYSICS_TEMPLATES = [
    (("pendulum",), """Create an interactive pendulum visualization showing:
- Adjustable length, mass, and initial angle
- Real-time period calculation
- Energy conservation display (potential vs kinetic)
- Trace of pendulum path
- Comparison with small angle approximation"""),
    (("wave", "frequency"), """Create an interactive wave visualization showing:
- Adjustable frequency, amplitude, and wavelength
- Wave interference patterns
- Standing waves demonstration
- Real-time wave equation display"""),
    (("projectile", "trajectory"), """Create an interactive projectile motion visualization showing:
- Adjustable launch angle and velocity
- Trajectory path with vectors
- Range and maximum height calculations
- Air resistance toggle"""),
]

MATH_TEMPLATES = [
    (("derivative", "tangent"), """Create an interactive derivative visualization showing:
- Function input with live graphing
- Tangent line at adjustable point
- Derivative graph below original
- Slope calculation display"""),
    (("integral", "area under"), """Create an interactive integration visualization showing:
- Riemann sum approximation
- Adjustable number of rectangles
- Exact area calculation
- Error visualization"""),
    (("vector",), """Create an interactive vector visualization showing:
- 2D vector addition
- Dot and cross products
- Vector decomposition
- Magnitude and direction"""),
]

CHEMISTRY_TEMPLATES = [
    (("molecule", "molecular"), """Create an interactive molecule visualization showing:
- Molecular structure with rotation and zoom controls
- Bond angles and lengths
- Common molecule library"""),
    (("reaction", "chemical"), """Create an interactive chemical reaction visualization showing:
- Reactants and products
- Energy diagram
- Reaction rate factors
- Equilibrium demonstration"""),
    (("periodic", "element"), """Create an interactive periodic table showing:
- Element properties on hover
- Trends visualization
- Group and period highlighting"""),
]

SUBJECT_TEMPLATES = {
    Subject.PHYSICS: PHYSICS_TEMPLATES,
    Subject.MATHEMATICS: MATH_TEMPLATES,
    Subject.CHEMISTRY: CHEMISTRY_TEMPLATES,
}


def find_template(prompt: str, subject: Subject) -> Optional[str]:
    """
    Template whose keywords appear in the prompt.

    The requested subject's templates are checked first, then the others.
    """
    prompt_lower = prompt.lower()
    ordered = [subject] + [s for s in SUBJECT_TEMPLATES if s != subject]

    for candidate in ordered:
        for keywords, template in SUBJECT_TEMPLATES.get(candidate, []):
            if any(keyword in prompt_lower for keyword in keywords):
                return template
    return None


def enhance_prompt_with_template(prompt: str, subject: Subject) -> str:
    """
    Expand a user prompt with a matching subject template.

    Args:
        prompt: User request
        subject: Subject area of the request

    Returns:
        Generation instructions that keep the user's own wording
    """
    template = find_template(prompt, subject)
    if template:
        return f"{template}\n\nUser request: {prompt}"

    return (
        f"Create an interactive educational {subject.value} visualization for: {prompt}\n"
        "Include adjustable parameters, clear labels, and smooth animations to aid understanding."
    )


def build_user_prompt(prompt: str, subject: Subject, context: str = "") -> str:
    """Full user message: enhanced request plus retrieved context."""
    message = enhance_prompt_with_template(prompt, subject)
    if context:
        message += f"\n\nContext:\n{context}"
    return message


def build_regeneration_prompt(user_prompt: str, code: str, feedback: list[str]) -> str:
    """Ask the model to fix code that failed validation."""
    issues = "\n".join(f"- {line}" for line in feedback)
    return (
        f"{user_prompt}\n\n"
        "A previous attempt produced this code:\n"
        f"{code}\n\n"
        "It failed validation with these issues:\n"
        f"{issues}\n\n"
        "Return a corrected, complete version of the code."
    )
