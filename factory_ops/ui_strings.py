from __future__ import annotations

from typing import Dict, List


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "Factory Ops",
    "purchase_request": "Pedido de compra",
    "quotation": "Pedido de cotacao",
    "budget": "Orcamento",
    "delivery_note": "Nota de encomenda",
    "supplier": "Fornecedor",
    "raw_material": "Materia-prima",
    "product": "Produto",
}


STATUS_GROUPS: Dict[str, List[Dict[str, str]]] = {
    "purchase_request": [
        {
            "key": "open",
            "label": "Aberto",
            "description": "Pedido pronto para ser enviado a cotacao.",
        },
        {
            "key": "being_quoted",
            "label": "Em cotacao",
            "description": "Pedido de cotacao enviado a um fornecedor.",
        },
        {
            "key": "has_budgets",
            "label": "Com orcamentos",
            "description": "Fornecedor ja respondeu com pelo menos uma linha de orcamento.",
        },
        {
            "key": "closed",
            "label": "Concluido",
            "description": "Orcamento aceite e nota de encomenda emitida.",
        },
        {
            "key": "received",
            "label": "Recebido",
            "description": "Material recebido em boas condicoes e stock atualizado.",
        },
    ],
    "quotation": [
        {
            "key": "issued",
            "label": "Emitido",
            "description": "Pedido de cotacao enviado ao fornecedor, sem resposta.",
        },
        {
            "key": "has_budgets",
            "label": "Com orcamentos",
            "description": "Fornecedor submeteu linhas de orcamento.",
        },
        {
            "key": "finalized",
            "label": "Finalizado",
            "description": "Um orcamento foi aceite; a cotacao ja nao aceita alteracoes.",
        },
    ],
    "budget": [
        {
            "key": "responded",
            "label": "Respondido",
            "description": "Orcamento submetido pelo fornecedor, a aguardar decisao.",
        },
        {
            "key": "accepted",
            "label": "Aceite",
            "description": "Orcamento escolhido; originou uma nota de encomenda.",
        },
        {
            "key": "rejected",
            "label": "Recusado",
            "description": "Outro orcamento da mesma cotacao foi aceite.",
        },
    ],
    "delivery_note": [
        {
            "key": "pending",
            "label": "Pendente",
            "description": "A aguardar validacao da rececao pelo operador.",
        },
        {
            "key": "received",
            "label": "Recebida",
            "description": "Entrega validada e stock atualizado.",
        },
        {
            "key": "disputed",
            "label": "Reclamada",
            "description": "Entrega com problemas; fornecedor notificado.",
        },
        {
            "key": "redelivered",
            "label": "Reentregue",
            "description": "Substituida por uma nova nota pendente.",
        },
    ],
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "purchase_request_created": "Pedido de compra criado.",
        "quotation_dispatched": "Pedido de cotacao enviado ao fornecedor.",
        "budget_created": "Orcamento registado.",
        "budget_line_added": "Linha de orcamento registada.",
        "budget_accepted": "Orcamento aceite com sucesso.",
        "delivery_received": "Nota atualizada com sucesso.",
        "delivery_disputed": "Nota reclamada; fornecedor notificado.",
        "dispute_email_sent": "Email enviado com sucesso.",
        "redelivery_confirmed": "Entrega substituta registada. A nova nota sera validada pelo operador.",
        "stock_updated": "Stock atualizado.",
    },
    "error": {
        "action_invalid": "Acao invalida para o estado atual.",
        "validation_error": "Dados invalidos.",
        "not_found": "Registo nao encontrado.",
        "state_conflict": "Operacao nao permitida no estado atual.",
        "description_required": "A descricao e obrigatoria.",
        "requester_not_found": "Utilizador nao encontrado.",
        "lines_required": "E necessario adicionar pelo menos um item ao pedido.",
        "quantity_invalid": "Todos os itens devem ter uma quantidade superior a zero.",
        "unit_price_invalid": "O preco unitario nao pode ser negativo.",
        "materials_not_found": "Materia(s)-prima(s) nao encontrada(s).",
        "purchase_request_not_found": "Pedido de compra nao encontrado.",
        "purchase_request_state_invalid": "Pedido deve estar em estado 'Aberto' para gerar cotacao.",
        "supplier_not_found": "Fornecedor nao encontrado.",
        "supplier_id_required": "Indique o fornecedor.",
        "quotation_not_found": "Pedido de cotacao nao encontrado.",
        "quotation_finalized": "O pedido de cotacao ja foi finalizado.",
        "token_invalid": "Token de acesso invalido.",
        "budget_not_found": "Orcamento nao encontrado.",
        "budget_not_open": "O orcamento ja foi decidido.",
        "budget_quotation_missing": "Orcamento nao esta associado a uma cotacao.",
        "delivery_note_not_found": "Nota de encomenda nao encontrada.",
        "delivery_note_processed": "Nota ja foi processada.",
        "delivery_note_not_disputed": "A nota nao esta em estado 'Reclamada'.",
        "redelivery_in_progress": "Ja foi registada nova entrega para esta nota.",
        "supplier_email_missing": "Fornecedor nao encontrado ou sem email.",
        "raw_material_not_found": "Materia-prima nao encontrada.",
        "product_not_found": "Produto nao encontrado.",
        "stock_id_invalid": "O ID deve ser maior que zero.",
        "stock_quantity_invalid": "A quantidade em stock nao pode ser negativa.",
        "notification_fields_required": "Destinatario, assunto e mensagem sao obrigatorios.",
        "notification_failed": "Nao foi possivel enviar a notificacao.",
        "in_good_condition_required": "Indique se o material chegou em boas condicoes.",
        "unexpected_error": "Nao foi possivel concluir a operacao. Tente novamente em instantes.",
    },
}


EMAIL_TEMPLATES: Dict[str, Dict[str, str]] = {
    "quotation_request": {
        "subject": "Novo Pedido de Cotacao",
        "body": (
            "Caro fornecedor {supplier_name},\n\n"
            "Foi-lhe atribuido um pedido de cotacao. "
            "Clique no link abaixo para aceder ao pedido:\n\n{link}\n\n"
            "Este link e exclusivo para si."
        ),
    },
    "delivery_dispute": {
        "subject": "Reclamacao de Entrega - Nova Acao Requerida",
        "body": (
            "Caro fornecedor {supplier_name},\n\n"
            "Foi detetado um problema com a entrega da nota #{note_id}.\n"
            "Solicitamos nova entrega dos materiais.\n\n"
            "Por favor, aceda ao seguinte link para confirmar a nova entrega:\n\n{link}\n\n"
            "Este link e exclusivo para si."
        ),
    },
    "raw_material_low_stock": {
        "subject": "Stock Baixo - {name}",
        "body": 'A materia-prima "{name}" tem apenas {quantity} unidades em stock.',
    },
    "product_low_stock": {
        "subject": "Stock Baixo - Produto {name}",
        "body": 'O produto "{name}" tem apenas {quantity} unidades em stock.',
    },
}


def status_keys_for_group(group: str) -> List[str]:
    return [item["key"] for item in STATUS_GROUPS.get(group, [])]


def build_status_labels(group: str) -> Dict[str, str]:
    return {item["key"]: item["label"] for item in STATUS_GROUPS.get(group, [])}


def status_label(group: str, key: str | None) -> str:
    normalized = str(key or "").strip()
    return build_status_labels(group).get(normalized, normalized)


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)


def render_email(template_key: str, **values) -> tuple[str, str]:
    template = EMAIL_TEMPLATES[template_key]
    return template["subject"].format(**values), template["body"].format(**values)
