"""BaseFrontend — language-agnostic tree-sitter AST → member IR lowering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..frontend import Frontend
from ..ir import (
    NO_SOURCE_LOCATION,
    IRInstruction,
    Member,
    MemberKind,
    Opcode,
    SourceLocation,
)
from .. import constants

logger = logging.getLogger(__name__)


@dataclass
class _MemberDraft:
    """A member whose instruction list is still being emitted."""

    name: str
    kind: MemberKind
    owner: str = ""
    params: list[str] = field(default_factory=list)
    instructions: list[IRInstruction] = field(default_factory=list)

    def build(self) -> Member:
        return Member(
            name=self.name,
            kind=self.kind,
            owner=self.owner,
            params=self.params,
            instructions=self.instructions,
        )


@dataclass
class _Scope:
    """An open code-bearing member plus the loop context saved when it opened."""

    draft: _MemberDraft
    qualname_part: str = ""
    holds_fields: bool = False
    saved_loop_stack: list[dict[str, str]] = field(default_factory=list)
    saved_break_stack: list[str] = field(default_factory=list)


class BaseFrontend(Frontend):
    """Base class for deterministic tree-sitter frontends.

    Subclasses populate ``_STMT_DISPATCH`` and ``_EXPR_DISPATCH`` tables and
    override field-name / literal constants where the grammar differs from
    the defaults.

    Every function body, class body and the module body is emitted into its
    own method member.  Simple assignments made directly in a module or class
    body are additionally recorded as field members holding a copy of their
    initializer instructions.
    """

    # ── overridable constants ────────────────────────────────────

    FUNC_NAME_FIELD: str = "name"
    FUNC_PARAMS_FIELD: str = "parameters"
    FUNC_BODY_FIELD: str = "body"

    IF_CONDITION_FIELD: str = "condition"
    IF_CONSEQUENCE_FIELD: str = "consequence"
    IF_ALTERNATIVE_FIELD: str = "alternative"
    ELIF_CLAUSE_TYPE: str = "elif_clause"

    WHILE_CONDITION_FIELD: str = "condition"
    WHILE_BODY_FIELD: str = "body"

    CALL_FUNCTION_FIELD: str = "function"
    CALL_ARGUMENTS_FIELD: str = "arguments"

    CLASS_NAME_FIELD: str = "name"
    CLASS_BODY_FIELD: str = "body"

    ATTR_OBJECT_FIELD: str = "object"
    ATTR_ATTRIBUTE_FIELD: str = "attribute"
    ATTRIBUTE_NODE_TYPE: str = "attribute"

    SUBSCRIPT_VALUE_FIELD: str = "value"
    SUBSCRIPT_INDEX_FIELD: str = "subscript"
    SUBSCRIPT_NODE_TYPE: str = "subscript"

    ASSIGN_LEFT_FIELD: str = "left"
    ASSIGN_RIGHT_FIELD: str = "right"

    NONE_LITERAL: str = "None"
    DEFAULT_RETURN_VALUE: str = "None"

    COMMENT_TYPES: frozenset[str] = frozenset({"comment"})
    NOISE_TYPES: frozenset[str] = frozenset({"newline", "\n"})

    # ── init ─────────────────────────────────────────────────────

    def __init__(self):
        self._reg_counter: int = 0
        self._label_counter: int = 0
        self._instructions: list[IRInstruction] = []
        self._source: bytes = b""
        self._loop_stack: list[dict[str, str]] = []
        self._break_target_stack: list[str] = []
        self._drafts: list[_MemberDraft] = []
        self._scopes: list[_Scope] = []
        self._STMT_DISPATCH: dict[str, Callable] = {}
        self._EXPR_DISPATCH: dict[str, Callable] = {}

    # ── helpers ──────────────────────────────────────────────────

    def _fresh_reg(self) -> str:
        r = f"%{self._reg_counter}"
        self._reg_counter += 1
        return r

    def _fresh_label(self, prefix: str = "L") -> str:
        lbl = f"{prefix}_{self._label_counter}"
        self._label_counter += 1
        return lbl

    def _emit(
        self,
        opcode: Opcode,
        *,
        result_reg: str = "",
        operands: list[Any] | None = None,
        label: str = "",
        node=None,
    ) -> IRInstruction:
        inst = IRInstruction(
            opcode=opcode,
            result_reg=result_reg or None,
            operands=operands or [],
            label=label or None,
            source_location=self._source_loc(node) if node else NO_SOURCE_LOCATION,
        )
        self._instructions.append(inst)
        return inst

    def _emit_const(self, value: str, node=None) -> str:
        reg = self._fresh_reg()
        self._emit(Opcode.CONST, result_reg=reg, operands=[value], node=node)
        return reg

    def _emit_symbolic(self, description: str, node=None) -> str:
        reg = self._fresh_reg()
        self._emit(Opcode.SYMBOLIC, result_reg=reg, operands=[description], node=node)
        return reg

    def _node_text(self, node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _source_loc(self, node) -> SourceLocation:
        s, e = node.start_point, node.end_point
        return SourceLocation(
            start_line=s[0] + 1,
            start_col=s[1],
            end_line=e[0] + 1,
            end_col=e[1],
        )

    # ── member scopes ────────────────────────────────────────────

    def _qualname(self) -> str:
        return ".".join(s.qualname_part for s in self._scopes if s.qualname_part)

    def _open_member(
        self, name: str, owner: str, qualname_part: str, holds_fields: bool
    ) -> _MemberDraft:
        """Start emitting into a new method member; *qualname_part* names its scope."""
        draft = _MemberDraft(name=name, kind=MemberKind.METHOD, owner=owner)
        self._drafts.append(draft)
        self._scopes.append(
            _Scope(
                draft=draft,
                qualname_part=qualname_part,
                holds_fields=holds_fields,
                saved_loop_stack=self._loop_stack,
                saved_break_stack=self._break_target_stack,
            )
        )
        self._loop_stack = []
        self._break_target_stack = []
        self._instructions = draft.instructions
        return draft

    def _close_member(self):
        scope = self._scopes.pop()
        self._loop_stack = scope.saved_loop_stack
        self._break_target_stack = scope.saved_break_stack
        self._instructions = self._scopes[-1].draft.instructions if self._scopes else []

    def _record_field(self, name: str, start: int):
        """Record instructions emitted since *start* as the initializer of field *name*."""
        if not self._scopes or not self._scopes[-1].holds_fields:
            return
        self._drafts.append(
            _MemberDraft(
                name=name,
                kind=MemberKind.FIELD,
                owner=self._qualname(),
                instructions=list(self._instructions[start:]),
            )
        )

    # ── entry point ──────────────────────────────────────────────

    def lower(self, tree, source: bytes) -> list[Member]:
        self._reg_counter = 0
        self._label_counter = 0
        self._source = source
        self._loop_stack = []
        self._break_target_stack = []
        self._drafts = []
        self._scopes = []
        self._open_member(constants.ENTRY_METHOD_NAME, "", "", holds_fields=True)
        self._lower_block(tree.root_node)
        self._close_member()
        members = [draft.build() for draft in self._drafts]
        logger.debug("Lowered %d members", len(members))
        return members

    # ── dispatchers ──────────────────────────────────────────────

    def _lower_block(self, node):
        """Lower a block of statements (module / suite / body).

        If *node* is itself a known statement whose handler is **not**
        ``_lower_block`` (e.g. a bare ``return_statement`` used as the
        consequence of an ``if``), it is lowered directly rather than
        iterating its children as sub-statements.
        """
        handler = self._STMT_DISPATCH.get(node.type)
        if (
            handler is not None
            and getattr(handler, "__func__", None) is not BaseFrontend._lower_block
        ):
            handler(node)
            return
        for child in node.children:
            if not child.is_named:
                continue
            self._lower_stmt(child)

    def _lower_stmt(self, node):
        ntype = node.type
        if ntype in self.COMMENT_TYPES or ntype in self.NOISE_TYPES:
            return
        handler = self._STMT_DISPATCH.get(ntype)
        if handler:
            handler(node)
            return
        # Fallback: try as expression
        self._lower_expr(node)

    def _lower_expr(self, node) -> str:
        """Lower an expression, return the register holding its value."""
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler:
            return handler(node)
        logger.debug("No lowering for %s at %s", node.type, self._source_loc(node))
        return self._emit_symbolic(f"{constants.UNSUPPORTED_PREFIX}{node.type}", node)

    # ── common expression lowerers ───────────────────────────────

    def _lower_const_literal(self, node) -> str:
        return self._emit_const(self._node_text(node), node)

    def _lower_identifier(self, node) -> str:
        reg = self._fresh_reg()
        self._emit(
            Opcode.LOAD_VAR,
            result_reg=reg,
            operands=[self._node_text(node)],
            node=node,
        )
        return reg

    def _lower_paren(self, node) -> str:
        inner = next((c for c in node.children if c.is_named), None)
        if inner is None:
            return self._lower_const_literal(node)
        return self._lower_expr(inner)

    def _lower_binop(self, node) -> str:
        children = [c for c in node.children if c.type not in ("(", ")")]
        lhs_reg = self._lower_expr(children[0])
        op = self._node_text(children[1])
        rhs_reg = self._lower_expr(children[2])
        reg = self._fresh_reg()
        self._emit(
            Opcode.BINOP,
            result_reg=reg,
            operands=[op, lhs_reg, rhs_reg],
            node=node,
        )
        return reg

    def _lower_unop(self, node) -> str:
        children = [c for c in node.children if c.type not in ("(", ")")]
        op = self._node_text(children[0])
        operand_reg = self._lower_expr(children[1])
        reg = self._fresh_reg()
        self._emit(
            Opcode.UNOP,
            result_reg=reg,
            operands=[op, operand_reg],
            node=node,
        )
        return reg

    def _lower_call(self, node) -> str:
        func_node = node.child_by_field_name(self.CALL_FUNCTION_FIELD)
        args_node = node.child_by_field_name(self.CALL_ARGUMENTS_FIELD)
        arg_regs = self._extract_call_args(args_node)

        # Method call: obj.method(...)
        if func_node is not None and func_node.type == self.ATTRIBUTE_NODE_TYPE:
            obj_reg = self._lower_expr(
                func_node.child_by_field_name(self.ATTR_OBJECT_FIELD)
            )
            method_name = self._node_text(
                func_node.child_by_field_name(self.ATTR_ATTRIBUTE_FIELD)
            )
            reg = self._fresh_reg()
            self._emit(
                Opcode.CALL_METHOD,
                result_reg=reg,
                operands=[obj_reg, method_name] + arg_regs,
                node=node,
            )
            return reg

        # Plain function call
        if func_node is not None and func_node.type == "identifier":
            reg = self._fresh_reg()
            self._emit(
                Opcode.CALL_FUNCTION,
                result_reg=reg,
                operands=[self._node_text(func_node)] + arg_regs,
                node=node,
            )
            return reg

        # Dynamic / unknown call target
        target_reg = (
            self._lower_expr(func_node)
            if func_node is not None
            else self._emit_symbolic("unknown_call_target", node)
        )
        reg = self._fresh_reg()
        self._emit(
            Opcode.CALL_UNKNOWN,
            result_reg=reg,
            operands=[target_reg] + arg_regs,
            node=node,
        )
        return reg

    def _extract_call_args(self, args_node) -> list[str]:
        if args_node is None:
            return []
        return [self._lower_expr(c) for c in args_node.children if c.is_named]

    def _lower_attribute(self, node) -> str:
        obj_node = node.child_by_field_name(self.ATTR_OBJECT_FIELD)
        attr_node = node.child_by_field_name(self.ATTR_ATTRIBUTE_FIELD)
        if obj_node is None or attr_node is None:
            return self._lower_const_literal(node)
        obj_reg = self._lower_expr(obj_node)
        reg = self._fresh_reg()
        self._emit(
            Opcode.LOAD_FIELD,
            result_reg=reg,
            operands=[obj_reg, self._node_text(attr_node)],
            node=node,
        )
        return reg

    def _lower_subscript(self, node) -> str:
        obj_node = node.child_by_field_name(self.SUBSCRIPT_VALUE_FIELD)
        idx_node = node.child_by_field_name(self.SUBSCRIPT_INDEX_FIELD)
        if obj_node is None or idx_node is None:
            return self._lower_const_literal(node)
        obj_reg = self._lower_expr(obj_node)
        idx_reg = self._lower_expr(idx_node)
        reg = self._fresh_reg()
        self._emit(
            Opcode.LOAD_INDEX,
            result_reg=reg,
            operands=[obj_reg, idx_reg],
            node=node,
        )
        return reg

    def _lower_sequence_literal(self, node, kind: str) -> str:
        elems = [c for c in node.children if c.is_named]
        size_reg = self._emit_const(str(len(elems)))
        arr_reg = self._fresh_reg()
        self._emit(
            Opcode.NEW_ARRAY,
            result_reg=arr_reg,
            operands=[kind, size_reg],
            node=node,
        )
        for i, elem in enumerate(elems):
            val_reg = self._lower_expr(elem)
            idx_reg = self._emit_const(str(i))
            self._emit(Opcode.STORE_INDEX, operands=[arr_reg, idx_reg, val_reg])
        return arr_reg

    def _lower_dict_literal(self, node) -> str:
        obj_reg = self._fresh_reg()
        self._emit(
            Opcode.NEW_OBJECT,
            result_reg=obj_reg,
            operands=["dict"],
            node=node,
        )
        for child in node.children:
            if child.type != "pair":
                continue
            key_reg = self._lower_expr(child.child_by_field_name("key"))
            val_reg = self._lower_expr(child.child_by_field_name("value"))
            self._emit(Opcode.STORE_INDEX, operands=[obj_reg, key_reg, val_reg])
        return obj_reg

    # ── common store target ──────────────────────────────────────

    def _lower_store_target(self, target, val_reg: str, parent_node):
        if target.type == "identifier":
            self._emit(
                Opcode.STORE_VAR,
                operands=[self._node_text(target), val_reg],
                node=parent_node,
            )
        elif target.type == self.ATTRIBUTE_NODE_TYPE:
            obj_reg = self._lower_expr(target.child_by_field_name(self.ATTR_OBJECT_FIELD))
            attr_node = target.child_by_field_name(self.ATTR_ATTRIBUTE_FIELD)
            self._emit(
                Opcode.STORE_FIELD,
                operands=[obj_reg, self._node_text(attr_node), val_reg],
                node=parent_node,
            )
        elif target.type == self.SUBSCRIPT_NODE_TYPE:
            obj_reg = self._lower_expr(
                target.child_by_field_name(self.SUBSCRIPT_VALUE_FIELD)
            )
            idx_reg = self._lower_expr(
                target.child_by_field_name(self.SUBSCRIPT_INDEX_FIELD)
            )
            self._emit(
                Opcode.STORE_INDEX,
                operands=[obj_reg, idx_reg, val_reg],
                node=parent_node,
            )
        else:
            self._emit(
                Opcode.STORE_VAR,
                operands=[self._node_text(target), val_reg],
                node=parent_node,
            )

    # ── common statement lowerers ────────────────────────────────

    def _lower_assignment(self, node):
        left = node.child_by_field_name(self.ASSIGN_LEFT_FIELD)
        right = node.child_by_field_name(self.ASSIGN_RIGHT_FIELD)
        start = len(self._instructions)
        if right is not None:
            val_reg = self._lower_expr(right)
            self._lower_store_target(left, val_reg, node)
        if left.type == "identifier":
            self._record_field(self._node_text(left), start)

    def _lower_augmented_assignment(self, node):
        left = node.child_by_field_name(self.ASSIGN_LEFT_FIELD)
        right = node.child_by_field_name(self.ASSIGN_RIGHT_FIELD)
        op_node = node.child_by_field_name("operator")
        op_text = self._node_text(op_node).rstrip("=")
        lhs_reg = self._lower_expr(left)
        rhs_reg = self._lower_expr(right)
        result = self._fresh_reg()
        self._emit(
            Opcode.BINOP,
            result_reg=result,
            operands=[op_text, lhs_reg, rhs_reg],
            node=node,
        )
        self._lower_store_target(left, result, node)

    def _lower_return(self, node):
        value = next((c for c in node.children if c.is_named), None)
        if value is not None:
            val_reg = self._lower_expr(value)
        else:
            val_reg = self._emit_const(self.DEFAULT_RETURN_VALUE)
        self._emit(Opcode.RETURN, operands=[val_reg], node=node)

    def _lower_if(self, node):
        end_label = self._fresh_label("if_end")
        self._lower_conditional_chain(
            node,
            node.children_by_field_name(self.IF_ALTERNATIVE_FIELD),
            end_label,
            "if",
        )
        self._emit(Opcode.LABEL, label=end_label)

    def _lower_conditional_chain(self, node, alternatives: list, end_label: str, prefix: str):
        """Lower one condition/consequence pair, then its remaining alternatives."""
        cond_reg = self._lower_expr(node.child_by_field_name(self.IF_CONDITION_FIELD))
        true_label = self._fresh_label(f"{prefix}_true")
        false_label = self._fresh_label(f"{prefix}_false") if alternatives else end_label

        self._emit(
            Opcode.BRANCH_IF,
            operands=[cond_reg],
            label=f"{true_label},{false_label}",
            node=node,
        )
        self._emit(Opcode.LABEL, label=true_label)
        self._lower_block(node.child_by_field_name(self.IF_CONSEQUENCE_FIELD))
        self._emit(Opcode.BRANCH, label=end_label)

        if not alternatives:
            return
        self._emit(Opcode.LABEL, label=false_label)
        alt, rest = alternatives[0], alternatives[1:]
        if alt.type == self.ELIF_CLAUSE_TYPE:
            self._lower_conditional_chain(alt, rest, end_label, "elif")
            return
        body = alt.child_by_field_name("body")
        self._lower_block(body if body is not None else alt)
        self._emit(Opcode.BRANCH, label=end_label)

    def _push_loop(self, continue_label: str, end_label: str):
        self._loop_stack.append(
            {"continue_label": continue_label, "end_label": end_label}
        )
        self._break_target_stack.append(end_label)

    def _pop_loop(self):
        self._loop_stack.pop()
        self._break_target_stack.pop()

    def _lower_break(self, node):
        if self._break_target_stack:
            self._emit(Opcode.BRANCH, label=self._break_target_stack[-1], node=node)
        else:
            self._emit_symbolic("break_outside_loop", node)

    def _lower_continue(self, node):
        if self._loop_stack:
            self._emit(
                Opcode.BRANCH,
                label=self._loop_stack[-1]["continue_label"],
                node=node,
            )
        else:
            self._emit_symbolic("continue_outside_loop", node)

    def _lower_while(self, node):
        loop_label = self._fresh_label("while_cond")
        body_label = self._fresh_label("while_body")
        end_label = self._fresh_label("while_end")

        self._emit(Opcode.LABEL, label=loop_label)
        cond_reg = self._lower_expr(node.child_by_field_name(self.WHILE_CONDITION_FIELD))
        self._emit(
            Opcode.BRANCH_IF,
            operands=[cond_reg],
            label=f"{body_label},{end_label}",
            node=node,
        )

        self._emit(Opcode.LABEL, label=body_label)
        self._push_loop(loop_label, end_label)
        self._lower_block(node.child_by_field_name(self.WHILE_BODY_FIELD))
        self._pop_loop()
        self._emit(Opcode.BRANCH, label=loop_label)

        self._emit(Opcode.LABEL, label=end_label)

    def _lower_function_def(self, node):
        func_name = self._node_text(node.child_by_field_name(self.FUNC_NAME_FIELD))
        params_node = node.child_by_field_name(self.FUNC_PARAMS_FIELD)
        body_node = node.child_by_field_name(self.FUNC_BODY_FIELD)

        draft = self._open_member(func_name, self._qualname(), func_name, holds_fields=False)
        qualname = self._qualname()
        if params_node is not None:
            draft.params = self._lower_params(params_node)
        if body_node is not None:
            self._lower_block(body_node)
        # Implicit return at end of function
        none_reg = self._emit_const(self.DEFAULT_RETURN_VALUE)
        self._emit(Opcode.RETURN, operands=[none_reg])
        self._close_member()

        func_reg = self._emit_const(
            constants.FUNC_REF_TEMPLATE.format(name=qualname), node
        )
        self._emit(Opcode.STORE_VAR, operands=[func_name, func_reg], node=node)

    def _lower_params(self, params_node) -> list[str]:
        """Lower each parameter to SYMBOLIC + STORE_VAR; return the names."""
        names = []
        for child in params_node.children:
            if not child.is_named:
                continue
            pname = self._extract_param_name(child)
            if pname is None:
                continue
            reg = self._emit_symbolic(f"{constants.PARAM_PREFIX}{pname}", child)
            self._emit(Opcode.STORE_VAR, operands=[pname, reg])
            names.append(pname)
        return names

    def _extract_param_name(self, child) -> str | None:
        """Extract parameter name from a parameter node. Override per language."""
        if child.type == "identifier":
            return self._node_text(child)
        name_node = child.child_by_field_name("name")
        if name_node is not None:
            return self._node_text(name_node)
        id_node = next((sub for sub in child.children if sub.type == "identifier"), None)
        return self._node_text(id_node) if id_node is not None else None

    def _lower_class_def(self, node):
        class_name = self._node_text(node.child_by_field_name(self.CLASS_NAME_FIELD))
        body_node = node.child_by_field_name(self.CLASS_BODY_FIELD)

        owner = ".".join(part for part in (self._qualname(), class_name) if part)
        self._open_member(
            constants.CLASS_BODY_METHOD_NAME, owner, class_name, holds_fields=True
        )
        qualname = self._qualname()
        if body_node is not None:
            self._lower_block(body_node)
        self._close_member()

        cls_reg = self._emit_const(
            constants.CLASS_REF_TEMPLATE.format(name=qualname), node
        )
        self._emit(Opcode.STORE_VAR, operands=[class_name, cls_reg], node=node)

    def _lower_raise_or_throw(self, node, keyword: str = "raise"):
        value = next((c for c in node.children if c.type != keyword and c.is_named), None)
        if value is not None:
            val_reg = self._lower_expr(value)
        else:
            val_reg = self._emit_const(self.DEFAULT_RETURN_VALUE)
        self._emit(Opcode.THROW, operands=[val_reg], node=node)

    def _lower_try_catch(
        self,
        node,
        body_node,
        catch_clauses: list[dict],
        finally_node=None,
        else_node=None,
    ):
        """Lower try/catch/finally into labeled blocks connected by BRANCH.

        Each catch dict: {"body": node, "variable": str|None, "type": str|None}
        """
        try_body_label = self._fresh_label("try_body")
        catch_labels = [
            self._fresh_label(f"catch_{i}") for i in range(len(catch_clauses))
        ]
        finally_label = self._fresh_label("try_finally") if finally_node else ""
        else_label = self._fresh_label("try_else") if else_node else ""
        end_label = self._fresh_label("try_end")
        exit_target = finally_label or end_label

        self._emit(Opcode.LABEL, label=try_body_label)
        if body_node is not None:
            self._lower_block(body_node)
        self._emit(Opcode.BRANCH, label=else_label or exit_target)

        for catch_label, clause in zip(catch_labels, catch_clauses):
            self._emit(Opcode.LABEL, label=catch_label)
            exc_type = clause.get("type") or "Exception"
            exc_reg = self._emit_symbolic(
                f"{constants.CAUGHT_EXCEPTION_PREFIX}:{exc_type}", node
            )
            if clause.get("variable"):
                self._emit(Opcode.STORE_VAR, operands=[clause["variable"], exc_reg])
            if clause.get("body") is not None:
                self._lower_block(clause["body"])
            self._emit(Opcode.BRANCH, label=exit_target)

        if else_node is not None:
            self._emit(Opcode.LABEL, label=else_label)
            self._lower_block(else_node)
            self._emit(Opcode.BRANCH, label=exit_target)

        if finally_node is not None:
            self._emit(Opcode.LABEL, label=finally_label)
            self._lower_block(finally_node)

        self._emit(Opcode.LABEL, label=end_label)

    def _lower_expression_statement(self, node):
        """Unwrap an expression statement; statement-shaped children dispatch as statements."""
        for child in node.children:
            if child.is_named:
                self._lower_stmt(child)
