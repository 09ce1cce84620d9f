"""Brand personas: prompt templates, template images and chat copy."""

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class Persona:
    """One image subject the relay can generate."""

    key: str
    subject: str  # prefixed to the user prompt, e.g. "TMAI"
    commands: frozenset[str]
    template_files: tuple[str, ...]  # PNG files under TEMPLATE_DIR, sent in order
    prompt_template: str  # contains {subject} and {prompt}
    working_messages: tuple[str, ...]
    usage_example: str
    file_prefix: str

    def render(self, prompt: str) -> str:
        """Build the enriched designer prompt sent to the provider."""
        return self.prompt_template.format(subject=self.subject, prompt=prompt)

    def working_message(self, display_name: str, choice=random.choice) -> str:
        return f"Hang on {display_name}... {choice(self.working_messages)}"

    def usage_text(self, ratios: list[str]) -> str:
        return (
            f"Please provide a description for the {self.subject} image you'd like me "
            f"to generate!\n\nExample: `{self.usage_example}`\n\n"
            f"💡 Use `--ratio <ratio>` to set aspect ratio ({', '.join(ratios)})!"
        )


_TMAI_PROMPT = """You are a professional designer for Token Metrics, specializing in creating \
high-quality, brand-consistent visuals for marketing and communications.

User Request: "{subject} {prompt}"

Design Requirements:
- Execute the user's creative direction precisely as specified
- Use the provided TMAI mascot image (Token Metrics' official mascot) as the foundation - \
maintain its exact appearance, style, and character design
- Position the Token Metrics logo prominently in the top left corner
- Ensure both the TMAI mascot and Token Metrics logo are the primary focal points
- Maintain professional quality suitable for official company use

Crypto Asset Guidelines:
- When incorporating cryptocurrency logos or symbols, only use well-known, accurately \
recognizable crypto brands (Bitcoin, Ethereum, Solana, DOGE, BNB, ADA..)
- DO NOT create fictional or hallucinated crypto logos
- If unsure about a specific crypto asset's visual identity, substitute with generic \
professional elements (charts, data visualizations, abstract tech patterns)
- Prioritize authenticity and accuracy over creative interpretation for brand assets

Style Standards:
- Keep the mascot's design strictly unchanged unless the user explicitly requests modifications
- Maintain Token Metrics' professional brand aesthetic
- Ensure visual coherence between all elements
- Create polished, publication-ready imagery
"""

_IAN_PROMPT = """You are a professional designer for Token Metrics, specializing in creating \
high-quality, brand-consistent visuals featuring Ian Balina, CEO and Founder of Token Metrics.

User Request: "{subject} {prompt}"

Design Requirements:
- Execute the user's creative direction precisely as specified
- Use the provided Ian Balina image as the foundation - maintain his exact appearance, \
style, and likeness
- Feature Ian Balina prominently as the main subject
- Position the Token Metrics logo prominently in the top left corner of the image
- Maintain professional quality suitable for official company use
- Create imagery that reflects Ian's role as CEO and Founder of Token Metrics

Style Standards:
- Keep Ian Balina's appearance strictly unchanged unless the user explicitly requests modifications
- Maintain Token Metrics' professional brand aesthetic
- Ensure visual coherence between all elements
- Create polished, publication-ready imagery
- Focus on leadership, expertise, and innovation themes appropriate for a CEO and Founder
"""

TMAI = Persona(
    key="tmai",
    subject="TMAI",
    commands=frozenset({"/tmai", "/test-tmai"}),
    template_files=("mascot-template.png", "TM_logo_primary_white.png"),
    prompt_template=_TMAI_PROMPT,
    working_messages=(
        "Catapulting imagination into reality...",
        "Waking up the AI hamsters...",
        "Consulting the crystal ball of creativity...",
        "Bribing the pixel artists with coffee...",
        "TMAI is choosing its outfit...",
        "Warming up the joke generators...",
        "Priming the creativity pumps...",
        "The AI muse is on a coffee break...",
        "Calibrating the funny bone sensors...",
        "TMAI is reviewing its script...",
        "The hamsters are running faster now...",
        "Polishing the humor circuits...",
        "TMAI is practicing its dramatic poses...",
        "Distilling pure imagination...",
        "The creative cauldron is bubbling...",
        "TMAI is warming up its vocal cords...",
        "Consulting the ancient scrolls of comedy...",
        "The AI artists are putting on their berets...",
        "TMAI is doing its pre-shoot stretches...",
        "The joke writers are on strike... using AI instead...",
    ),
    usage_example="/tmai A robot mascot analyzing cryptocurrency charts on a computer screen",
    file_prefix="mascot",
)

IAN = Persona(
    key="ian",
    subject="Ian Balina",
    commands=frozenset({"/ian", "/test-ian"}),
    template_files=("ian-balina-bg-removed.png", "TM_logo_primary_white.png"),
    prompt_template=_IAN_PROMPT,
    working_messages=(
        "Creating Ian Balina masterpiece...",
        "Consulting with Ian's vision...",
        "Crafting leadership imagery...",
        "Designing founder moments...",
        "Ian Balina is choosing his pose...",
        "Token Metrics CEO mode activated...",
        "Preparing innovation showcase...",
        "Designing blockchain brilliance...",
        "Crafting crypto excellence...",
        "Ian Balina is reviewing the scene...",
        "Token Metrics founder magic...",
        "Creating visionary content...",
        "Ian Balina is getting ready...",
        "Leadership in focus...",
        "Token Metrics artistry...",
    ),
    usage_example="/ian presenting at blockchain conference",
    file_prefix="ian-balina",
)

PERSONAS: dict[str, Persona] = {persona.key: persona for persona in (TMAI, IAN)}


def get_persona(key: str) -> Persona:
    """Look up a persona by key.

    Raises:
        KeyError: If no persona is registered under ``key``
    """
    try:
        return PERSONAS[key]
    except KeyError:
        raise KeyError(f"Unknown persona: {key!r}. Known: {sorted(PERSONAS)}") from None


def persona_for_command(command: str) -> Persona | None:
    """Return the persona that owns a slash command, if any."""
    for persona in PERSONAS.values():
        if command in persona.commands:
            return persona
    return None
