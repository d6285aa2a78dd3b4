from .output import assemble, output_path, render_output, write_output

__all__ = [
    "assemble",
    "output_path",
    "render_output",
    "write_output",
]
