"""Inkwell blog scaffold.

This package builds a static blog from Markdown and Jinja2 templates. The build
runs in discrete lifecycle phases: a ``before_build`` event (which compiles the
SCSS stylesheet), content discovery and preprocessing (which drops drafts from
publishable builds), templating, asset post-processing, and feed generation.

The main entry point is the CLI module, which provides commands for building
the site, running the development server, and creating new posts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
