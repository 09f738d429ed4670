from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

EMAIL_TEMPLATE_DIR = Path(__file__).parent / "email" / "templates"


class Renderer:
    _env: Environment | None = None

    @classmethod
    def initialize(cls, template_dir: str | Path = EMAIL_TEMPLATE_DIR) -> None:
        """
        Initializes the template environment for rendering email bodies.

        HTML templates are autoescaped; plain-text templates are not.

        Args:
            template_dir (str | Path): The directory containing the template files.
        """
        cls._env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
            enable_async=True,
        )

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._env is not None

    @classmethod
    async def render_template(cls, template_name: str, context: dict | None = None) -> str:
        """
        Renders an asynchronous template with the given context.

        Args:
            template_name (str): The name of the template to be rendered.
            context (dict | None): Data passed to the template.

        Returns:
            str: The rendered template as a string.

        Raises:
            TemplateNotFound: If the specified template cannot be found.
            RuntimeError: If the renderer has not been initialized.
        """
        if cls._env is None:
            raise RuntimeError("Renderer not initialized. Call initialize() first.")
        template = cls._env.get_template(template_name)
        return await template.render_async(**(context or {}))
