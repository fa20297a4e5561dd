"""Directive message rendering."""

from jinja2 import Environment, PackageLoader, select_autoescape

from contextweaver.domain.entities import Emotion, VirtualMessageContext


def create_jinja_env() -> Environment:
    """Create the Jinja2 environment for directive templates."""
    return Environment(
        loader=PackageLoader("contextweaver.application", "templates"),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class VirtualMessageBuilder:
    """Renders directive messages from a context snapshot.

    Every directive starts with a bracketed tag (for example [EMPATHY]) so
    the model can tell it apart from what the user said.
    """

    def __init__(self, preferred_language: str = "en-US") -> None:
        """Initialize the builder.

        Args:
            preferred_language: Language tag included in every directive.
        """
        self._language = preferred_language
        self._env = create_jinja_env()

    def _render(self, template_name: str, context: VirtualMessageContext, **kwargs) -> str:
        template = self._env.get_template(template_name)
        return template.render(context=context, language=self._language, **kwargs)

    def empathy(
        self,
        context: VirtualMessageContext,
        emotion: Emotion,
        intensity: float,
        trigger: str | None = None,
    ) -> str:
        """Render an [EMPATHY] directive for a strong emotion."""
        return self._render(
            "empathy.j2",
            context,
            emotion=emotion.value,
            intensity=intensity,
            trigger=trigger,
        )

    def listen_first(self, context: VirtualMessageContext) -> str:
        return self._render("listen_first.j2", context)

    def gentle_redirect(self, context: VirtualMessageContext, elapsed_ms: int) -> str:
        """Render a [GENTLE_REDIRECT] directive.

        Args:
            context: Context snapshot.
            elapsed_ms: Time since the session started.
        """
        return self._render(
            "gentle_redirect.j2", context, elapsed_minutes=max(0, elapsed_ms) // 60_000
        )

    def accept_stop(self, context: VirtualMessageContext) -> str:
        return self._render("accept_stop.j2", context)

    def push_tiny_step(self, context: VirtualMessageContext) -> str:
        return self._render("push_tiny_step.j2", context)

    def tone_shift(self, context: VirtualMessageContext) -> str:
        return self._render("tone_shift.j2", context)

    def checkpoint(self, context: VirtualMessageContext) -> str:
        return self._render("checkpoint.j2", context)
