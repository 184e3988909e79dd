"""Usage guide written next to the downloaded models.

Produces README_models.md and an executable model_examples.py describing
where each artifact lives and how to load it.
"""

from __future__ import annotations

import stat
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from fsxmodels.artifacts import ArtifactSpec, SourceKind

README_NAME = "README_models.md"
EXAMPLES_NAME = "model_examples.py"


def _usage_snippet(spec: ArtifactSpec, root: Path) -> str:
    path = root / spec.local_subdir
    match spec.source_kind:
        case SourceKind.LIBRARY_MANAGED:
            return (
                "```python\n"
                "from gpt4all import GPT4All\n"
                f'model = GPT4All("{path / spec.source_identifier}", allow_download=False)\n'
                "with model.chat_session():\n"
                '    print(model.generate("Your question here", max_tokens=1024))\n'
                "```"
            )
        case _:
            return (
                "```python\n"
                "from transformers import AutoTokenizer, AutoModelForCausalLM\n"
                f'tokenizer = AutoTokenizer.from_pretrained("{path}")\n'
                f'model = AutoModelForCausalLM.from_pretrained("{path}")\n'
                "```"
            )


def render_readme(specs: Sequence[ArtifactSpec], root: Path, mount_point: Path) -> str:
    lines = [
        "# AI/ML Models Setup",
        "",
        "This instance has been configured with FSx Lustre storage for AI/ML models.",
        "",
        "## Storage Layout",
        f"- FSx Lustre mounted at: `{mount_point}`",
        f"- Models directory: `{root}/`",
        "",
        "## Available Models",
    ]
    for i, spec in enumerate(specs, start=1):
        lines.append(f"{i}. **{spec.display_name}**: `{root / spec.local_subdir}/`")
    lines += ["", "## Usage Examples", ""]
    for spec in specs:
        lines += [f"### {spec.display_name}", _usage_snippet(spec, root), ""]
    lines += [
        "## Testing",
        f"Run the example script: `python3 {EXAMPLES_NAME}`",
        "",
        "## Notes",
        "- All models are stored persistently on FSx Lustre",
        "- Models are accessible across instance restarts",
        "",
    ]
    return "\n".join(lines)


def _example_function(spec: ArtifactSpec, root: Path) -> str:
    fn = "test_" + spec.name.replace("-", "_")
    path = root / spec.local_subdir
    if spec.source_kind is SourceKind.LIBRARY_MANAGED:
        body = (
            "    from gpt4all import GPT4All\n\n"
            f'    model = GPT4All("{path / spec.source_identifier}", allow_download=False)\n'
            "    with model.chat_session():\n"
            '        response = model.generate("How can I run LLMs efficiently on my laptop?", max_tokens=1024)\n'
            f'        print("{spec.display_name} response:", response)\n'
        )
    else:
        body = (
            "    from transformers import AutoModelForCausalLM, AutoTokenizer\n\n"
            f'    print("Loading {spec.display_name}...")\n'
            f'    tokenizer = AutoTokenizer.from_pretrained("{path}")\n'
            f'    model = AutoModelForCausalLM.from_pretrained("{path}")\n'
            '    inputs = tokenizer("Hello, how are you?", return_tensors="pt")\n'
            "    outputs = model.generate(**inputs, max_length=50)\n"
            f'    print("{spec.display_name} response:", tokenizer.decode(outputs[0], skip_special_tokens=True))\n'
        )
    return f'def {fn}():\n    """Test {spec.display_name}."""\n{body}'


def render_examples(specs: Sequence[ArtifactSpec], root: Path) -> str:
    functions = "\n\n".join(_example_function(spec, root) for spec in specs)
    names = "\n".join(f'    print("- test_{spec.name.replace("-", "_")}()")' for spec in specs)
    return (
        "#!/usr/bin/env python3\n"
        '"""Example usage for the downloaded AI/ML models."""\n\n\n'
        f"{functions}\n\n"
        'if __name__ == "__main__":\n'
        '    print("AI/ML Model Testing Examples")\n'
        '    print("Available functions:")\n'
        f"{names}\n"
    )


def write_guide(
    specs: Sequence[ArtifactSpec],
    root: Path,
    mount_point: Path,
    directory: Path,
) -> tuple[Path, Path]:
    """Write the README and the examples script into ``directory``.

    Returns:
        Paths of the README and the examples script.
    """
    directory.mkdir(parents=True, exist_ok=True)
    readme = directory / README_NAME
    examples = directory / EXAMPLES_NAME
    readme.write_text(render_readme(specs, root, mount_point))
    examples.write_text(render_examples(specs, root))
    examples.chmod(examples.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info(f"Usage examples created in {examples} and {readme}")
    return readme, examples
