"""Custom pylint rules for annotation style and configuration access."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from astroid import nodes
from pylint.checkers import BaseChecker
from pylint.lint import PyLinter

_MESSAGE_PREFER_OPTIONAL = "prefer-optional"
_MESSAGE_PREFER_UNION = "prefer-union"
_MESSAGE_NO_OBJECT_ANNOTATION = "no-object-annotation"
_MESSAGE_NO_ENVIRON_ACCESS = "no-environ-access"

# Environment variables are resolved once, by the configuration module.
_ENVIRON_MODULE_FILES = frozenset({"config.py"})
_ENVIRON_NAMES = frozenset({"environ", "getenv"})


class ProjectRulesChecker(BaseChecker):
    """Project-specific AST checks."""

    name = "project-rules"

    msgs = {
        "C9501": (
            "Use Optional[T] instead of T | None in annotations",
            _MESSAGE_PREFER_OPTIONAL,
            "Nullable annotations are spelled Optional[T].",
        ),
        "C9502": (
            "Avoid object in type annotations; use a more specific type",
            _MESSAGE_NO_OBJECT_ANNOTATION,
            "Annotations name the concrete type or Any, never object.",
        ),
        "C9503": (
            "Use Union[...] instead of | in type alias definitions",
            _MESSAGE_PREFER_UNION,
            "Type aliases spell unions with typing.Union.",
        ),
        "E9504": (
            "Read %s only from the configuration module",
            _MESSAGE_NO_ENVIRON_ACCESS,
            "Environment overrides are loaded once by config.py and passed down.",
        ),
    }

    def visit_annassign(self, node: nodes.AnnAssign) -> None:
        """Check the annotation of an annotated assignment."""
        self._check_annotation(node.annotation)

    def visit_arguments(self, node: nodes.Arguments) -> None:
        """Check every argument annotation."""
        for annotation in _argument_annotations(node):
            self._check_annotation(annotation)

    def visit_functiondef(self, node: nodes.FunctionDef) -> None:
        """Check a return annotation."""
        if node.returns is not None:
            self._check_annotation(node.returns)

    visit_asyncfunctiondef = visit_functiondef

    def visit_typealias(self, node: nodes.TypeAlias) -> None:
        """Reject ``|`` unions in ``type`` statements."""
        for union in node.value.nodes_of_class(nodes.BinOp):
            if union.op == "|":
                self.add_message(_MESSAGE_PREFER_UNION, node=union)

    def visit_attribute(self, node: nodes.Attribute) -> None:
        """Reject ``os.environ`` and ``os.getenv`` outside the config module."""
        if node.attrname not in _ENVIRON_NAMES or _is_config_module(node):
            return
        if isinstance(node.expr, nodes.Name) and node.expr.name == "os":
            self.add_message(
                _MESSAGE_NO_ENVIRON_ACCESS,
                node=node,
                args=(f"os.{node.attrname}",),
            )

    def visit_importfrom(self, node: nodes.ImportFrom) -> None:
        """Reject ``from os import environ`` outside the config module."""
        if node.modname != "os" or _is_config_module(node):
            return
        for imported, _alias in node.names:
            if imported in _ENVIRON_NAMES:
                self.add_message(
                    _MESSAGE_NO_ENVIRON_ACCESS,
                    node=node,
                    args=(f"os.{imported}",),
                )

    def _check_annotation(self, annotation: nodes.NodeNG) -> None:
        for candidate in annotation.nodes_of_class(nodes.BinOp):
            if candidate.op == "|" and (
                _is_none_literal(candidate.left) or _is_none_literal(candidate.right)
            ):
                self.add_message(_MESSAGE_PREFER_OPTIONAL, node=candidate)
        for candidate in annotation.nodes_of_class(nodes.Name):
            if candidate.name == "object":
                self.add_message(_MESSAGE_NO_OBJECT_ANNOTATION, node=candidate)


def _argument_annotations(arguments: nodes.Arguments) -> Iterable[nodes.NodeNG]:
    annotations = [
        *arguments.posonlyargs_annotations,
        *arguments.annotations,
        *arguments.kwonlyargs_annotations,
        arguments.varargannotation,
        arguments.kwargannotation,
    ]
    return [annotation for annotation in annotations if annotation is not None]


def _is_config_module(node: nodes.NodeNG) -> bool:
    module_file = node.root().file
    return module_file is not None and Path(module_file).name in _ENVIRON_MODULE_FILES


def _is_none_literal(node: nodes.NodeNG) -> bool:
    return isinstance(node, nodes.Const) and node.value is None


def register(linter: PyLinter) -> None:
    """Register checker."""
    linter.register_checker(ProjectRulesChecker(linter))
