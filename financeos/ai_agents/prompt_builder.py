"""Prompt assembly utilities for the AI agents.

Every system prompt carries the same no-fabrication rules followed by the
serialized data the agent was allowed to read, so the model can only answer
from what the tenant actually stored. User-authored training rules are
appended last, highest priority first.
"""
from __future__ import annotations

import json
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from financeos.core.formatting import humanize_currency, to_decimal

from .registry import AgentDefinition, Snapshot


class PromptBuilder:
    """Construct structured prompts for agent calls."""

    NO_FABRICATION = (
        "NUNCA invente dados. Responda APENAS com base nos dados reais fornecidos. "
        "Se não houver dados suficientes, diga claramente."
    )

    ANALYST_RULES = (
        "REGRAS OBRIGATÓRIAS:\n"
        "1. NUNCA invente números ou dados\n"
        "2. NUNCA faça suposições sobre dados não fornecidos\n"
        "3. Se não houver dados suficientes, diga claramente\n"
        "4. Responda em português brasileiro\n"
        "5. Seja conciso e direto\n"
        "6. Use os valores exatos dos dados fornecidos\n"
        "7. Se perguntado sobre algo fora dos dados, diga que não há informação disponível"
    )

    def build_agent_prompt(
        self,
        definition: AgentDefinition,
        snapshot: Snapshot,
        rules: Sequence[str] = (),
    ) -> str:
        """Build the system prompt for one registered agent."""

        sections = [definition.persona, definition.instructions, self.NO_FABRICATION]
        if definition.fetch is not None:
            sections.append(f"Dados disponíveis: {self.serialize_snapshot(snapshot)}")
        prompt = "\n".join(sections)

        if rules:
            prompt += "\n\nRegras personalizadas do usuário:\n" + "\n".join(rules)
        return prompt

    @staticmethod
    def serialize_snapshot(snapshot: Snapshot) -> str:
        return json.dumps(snapshot, ensure_ascii=False, default=str)

    def build_analysis_prompt(self, data_context: str) -> str:
        return (
            "Você é um analista financeiro especializado. Responda APENAS com base nos "
            "dados reais fornecidos.\n\n"
            f"{self.ANALYST_RULES}\n\n"
            f"{data_context}"
        )

    @staticmethod
    def build_analysis_context(
        transactions: Sequence[Dict[str, Any]],
        accounts: Iterable[Dict[str, Any]],
        recent_limit: int = 10,
    ) -> str:
        """Summarise transactions (newest first) and accounts in Portuguese."""

        totals = summarize_transactions(transactions)

        categories: Dict[str, Decimal] = defaultdict(Decimal)
        monthly: Dict[str, Dict[str, Decimal]] = {}
        for item in transactions:
            amount = to_decimal(item["amount"])
            month = str(item["transaction_date"])[:7]
            bucket = monthly.setdefault(month, {"income": Decimal("0"), "expense": Decimal("0")})
            if item["type"] == "income":
                bucket["income"] += amount
            else:
                bucket["expense"] += amount
                categories[item.get("category") or "Outros"] += amount

        category_lines = [
            f"- {name}: {humanize_currency(value)}" for name, value in categories.items()
        ] or ["- Nenhuma despesa registrada"]
        monthly_lines = [
            f"- {month}: Receitas {humanize_currency(v['income'])}, "
            f"Despesas {humanize_currency(v['expense'])}"
            for month, v in monthly.items()
        ]
        account_lines = [
            f"- {a['name']} ({a.get('bank_name') or 'N/A'}): "
            f"{humanize_currency(to_decimal(a['balance']))} - {a['status']}"
            for a in accounts
        ] or ["- Nenhuma conta cadastrada"]
        recent_lines = [
            f"- {t['transaction_date']}: {'Receita' if t['type'] == 'income' else 'Despesa'} - "
            f"{t['category']} - {humanize_currency(to_decimal(t['amount']))} - "
            f"{t.get('description') or 'Sem descrição'}"
            for t in transactions[:recent_limit]
        ]

        lines: List[str] = [
            "DADOS FINANCEIROS REAIS DO USUÁRIO:",
            "",
            "RESUMO GERAL:",
            f"- Total de Receitas: {humanize_currency(totals['total_income'])}",
            f"- Total de Despesas: {humanize_currency(totals['total_expense'])}",
            f"- Saldo Líquido: {humanize_currency(totals['net_balance'])}",
            f"- Número de Transações: {totals['transaction_count']}",
            "",
            "DESPESAS POR CATEGORIA:",
            *category_lines,
            "",
            "DADOS MENSAIS:",
            *monthly_lines,
            "",
            "CONTAS FINANCEIRAS:",
            *account_lines,
            "",
            "ÚLTIMAS TRANSAÇÕES:",
            *recent_lines,
        ]
        return "\n".join(lines)


def summarize_transactions(transactions: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    income = Decimal("0")
    expense = Decimal("0")
    count = 0
    for item in transactions:
        count += 1
        if item["type"] == "income":
            income += to_decimal(item["amount"])
        else:
            expense += to_decimal(item["amount"])
    return {
        "total_income": income,
        "total_expense": expense,
        "net_balance": income - expense,
        "transaction_count": count,
    }


__all__ = ["PromptBuilder", "summarize_transactions"]
