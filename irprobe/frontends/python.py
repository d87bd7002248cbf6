"""PythonFrontend — tree-sitter Python AST → member IR lowering."""

from __future__ import annotations

from typing import Callable

from ._base import BaseFrontend
from ..ir import Opcode


class PythonFrontend(BaseFrontend):
    """Lowers a Python tree-sitter AST into members of flattened TAC IR."""

    NONE_LITERAL = "None"
    DEFAULT_RETURN_VALUE = "None"

    def __init__(self):
        super().__init__()
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "identifier": self._lower_identifier,
            "integer": self._lower_const_literal,
            "float": self._lower_const_literal,
            "string": self._lower_const_literal,
            "concatenated_string": self._lower_const_literal,
            "true": self._lower_const_literal,
            "false": self._lower_const_literal,
            "none": self._lower_const_literal,
            "binary_operator": self._lower_binop,
            "boolean_operator": self._lower_binop,
            "comparison_operator": self._lower_binop,
            "unary_operator": self._lower_unop,
            "not_operator": self._lower_unop,
            "call": self._lower_call,
            "attribute": self._lower_attribute,
            "subscript": self._lower_subscript,
            "parenthesized_expression": self._lower_paren,
            "list": lambda node: self._lower_sequence_literal(node, "list"),
            "tuple": lambda node: self._lower_sequence_literal(node, "tuple"),
            "dictionary": self._lower_dict_literal,
            "conditional_expression": self._lower_conditional_expr,
            "keyword_argument": self._lower_keyword_argument,
        }
        self._STMT_DISPATCH: dict[str, Callable] = {
            "module": self._lower_block,
            "block": self._lower_block,
            "expression_statement": self._lower_expression_statement,
            "assignment": self._lower_assignment,
            "augmented_assignment": self._lower_augmented_assignment,
            "return_statement": self._lower_return,
            "if_statement": self._lower_if,
            "while_statement": self._lower_while,
            "for_statement": self._lower_for,
            "break_statement": self._lower_break,
            "continue_statement": self._lower_continue,
            "function_definition": self._lower_function_def,
            "class_definition": self._lower_class_def,
            "decorated_definition": self._lower_decorated_definition,
            "raise_statement": self._lower_raise,
            "assert_statement": self._lower_assert,
            "try_statement": self._lower_try,
            "pass_statement": lambda _: None,
        }

    # ── Python-specific: keyword arguments ───────────────────────

    def _lower_keyword_argument(self, node) -> str:
        return self._lower_expr(node.child_by_field_name("value"))

    # ── Python-specific: for loop ────────────────────────────────

    def _lower_for(self, node):
        left = node.child_by_field_name("left")
        iter_reg = self._lower_expr(node.child_by_field_name("right"))
        idx_var = f"__for_idx_{self._label_counter}"
        zero_reg = self._emit_const("0")
        self._emit(Opcode.STORE_VAR, operands=[idx_var, zero_reg])
        len_reg = self._fresh_reg()
        self._emit(Opcode.CALL_FUNCTION, result_reg=len_reg, operands=["len", iter_reg])

        loop_label = self._fresh_label("for_cond")
        body_label = self._fresh_label("for_body")
        update_label = self._fresh_label("for_update")
        end_label = self._fresh_label("for_end")

        self._emit(Opcode.LABEL, label=loop_label)
        idx_reg = self._fresh_reg()
        self._emit(Opcode.LOAD_VAR, result_reg=idx_reg, operands=[idx_var])
        cond_reg = self._fresh_reg()
        self._emit(Opcode.BINOP, result_reg=cond_reg, operands=["<", idx_reg, len_reg])
        self._emit(
            Opcode.BRANCH_IF,
            operands=[cond_reg],
            label=f"{body_label},{end_label}",
            node=node,
        )

        self._emit(Opcode.LABEL, label=body_label)
        elem_reg = self._fresh_reg()
        self._emit(Opcode.LOAD_INDEX, result_reg=elem_reg, operands=[iter_reg, idx_reg])
        self._lower_store_target(left, elem_reg, node)
        self._push_loop(update_label, end_label)
        self._lower_block(node.child_by_field_name("body"))
        self._pop_loop()

        self._emit(Opcode.LABEL, label=update_label)
        cur_reg = self._fresh_reg()
        self._emit(Opcode.LOAD_VAR, result_reg=cur_reg, operands=[idx_var])
        one_reg = self._emit_const("1")
        next_reg = self._fresh_reg()
        self._emit(Opcode.BINOP, result_reg=next_reg, operands=["+", cur_reg, one_reg])
        self._emit(Opcode.STORE_VAR, operands=[idx_var, next_reg])
        self._emit(Opcode.BRANCH, label=loop_label)

        self._emit(Opcode.LABEL, label=end_label)

    # ── Python-specific: decorators ──────────────────────────────

    def _lower_decorated_definition(self, node):
        """Decorators are not applied; only the definition itself is lowered."""
        definition = node.child_by_field_name("definition")
        if definition is not None:
            self._lower_stmt(definition)

    # ── Python-specific: raise ───────────────────────────────────

    def _lower_raise(self, node):
        self._lower_raise_or_throw(node, keyword="raise")

    # ── Python-specific: assert ──────────────────────────────────

    def _lower_assert(self, node):
        cond_node, *message = [c for c in node.children if c.is_named]
        cond_reg = self._lower_expr(cond_node)
        ok_label = self._fresh_label("assert_ok")
        fail_label = self._fresh_label("assert_fail")
        self._emit(
            Opcode.BRANCH_IF,
            operands=[cond_reg],
            label=f"{ok_label},{fail_label}",
            node=node,
        )
        self._emit(Opcode.LABEL, label=fail_label)
        arg_regs = [self._lower_expr(message[0])] if message else []
        exc_reg = self._fresh_reg()
        self._emit(
            Opcode.CALL_FUNCTION,
            result_reg=exc_reg,
            operands=["AssertionError"] + arg_regs,
            node=node,
        )
        self._emit(Opcode.THROW, operands=[exc_reg], node=node)
        self._emit(Opcode.LABEL, label=ok_label)

    # ── Python-specific: try/except/else/finally ─────────────────

    def _lower_try(self, node):
        catch_clauses = []
        finally_node = None
        else_node = None
        for child in node.children:
            if child.type == "except_clause":
                catch_clauses.append(self._parse_except_clause(child))
            elif child.type == "finally_clause":
                finally_node = next(
                    (c for c in child.children if c.type == "block"), None
                )
            elif child.type == "else_clause":
                else_node = child.child_by_field_name("body")
        self._lower_try_catch(
            node,
            node.child_by_field_name("body"),
            catch_clauses,
            finally_node,
            else_node,
        )

    def _parse_except_clause(self, clause) -> dict:
        """Split ``except ExcType as name:`` into its type, variable and body."""
        parts = [
            c
            for c in clause.children
            if c.is_named and c.type not in ("block", "comment")
        ]
        # Some grammar versions wrap ``ExcType as name`` in an as_pattern
        if parts and parts[0].type == "as_pattern":
            parts = [c for c in parts[0].children if c.is_named]
        return {
            "body": next((c for c in clause.children if c.type == "block"), None),
            "type": self._node_text(parts[0]) if parts else None,
            "variable": self._node_text(parts[1]) if len(parts) >= 2 else None,
        }

    # ── Python-specific: conditional expression ──────────────────

    def _lower_conditional_expr(self, node) -> str:
        true_expr, cond_expr, false_expr = [c for c in node.children if c.is_named]

        cond_reg = self._lower_expr(cond_expr)
        true_label = self._fresh_label("ternary_true")
        false_label = self._fresh_label("ternary_false")
        end_label = self._fresh_label("ternary_end")
        result_var = f"__ternary_{self._label_counter}"

        self._emit(
            Opcode.BRANCH_IF,
            operands=[cond_reg],
            label=f"{true_label},{false_label}",
            node=node,
        )

        self._emit(Opcode.LABEL, label=true_label)
        self._emit(Opcode.STORE_VAR, operands=[result_var, self._lower_expr(true_expr)])
        self._emit(Opcode.BRANCH, label=end_label)

        self._emit(Opcode.LABEL, label=false_label)
        self._emit(Opcode.STORE_VAR, operands=[result_var, self._lower_expr(false_expr)])
        self._emit(Opcode.BRANCH, label=end_label)

        self._emit(Opcode.LABEL, label=end_label)
        result_reg = self._fresh_reg()
        self._emit(Opcode.LOAD_VAR, result_reg=result_reg, operands=[result_var])
        return result_reg

    # ── Python-specific: tuple unpack ────────────────────────────

    def _lower_store_target(self, target, val_reg: str, parent_node):
        if target.type in ("pattern_list", "tuple_pattern", "list_pattern"):
            self._lower_tuple_unpack(target, val_reg, parent_node)
            return
        super()._lower_store_target(target, val_reg, parent_node)

    def _lower_tuple_unpack(self, target, val_reg: str, parent_node):
        for i, child in enumerate(c for c in target.children if c.is_named):
            idx_reg = self._emit_const(str(i))
            elem_reg = self._fresh_reg()
            self._emit(
                Opcode.LOAD_INDEX,
                result_reg=elem_reg,
                operands=[val_reg, idx_reg],
            )
            self._lower_store_target(child, elem_reg, parent_node)
