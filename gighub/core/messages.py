"""
User-facing message catalogue.

Every error surfaced by a workflow service carries a short message resolved
here in the actor's locale. Unknown locales fall back to
``settings.default_locale`` and then to English.
"""

from __future__ import annotations

from typing import Any, Optional

from gighub.core.config import settings

FALLBACK_LOCALE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    # -- Generic --
    "internal_error": {
        "en": "Internal System Error",
        "pt": "Erro interno do sistema",
    },
    "unauthorized": {
        "en": "Unauthorized",
        "pt": "Não autorizado",
    },
    "user_not_found": {
        "en": "User not found",
        "pt": "Utilizador não encontrado",
    },
    "gig_not_found": {
        "en": "Gig not found",
        "pt": "Gig não encontrado",
    },
    "plan_not_found": {
        "en": "No plan limits configured for plan '{plan_tier}'",
        "pt": "Não existem limites configurados para o plano '{plan_tier}'",
    },
    # -- Quota --
    "quota_exceeded": {
        "en": "Plan limit reached. Upgrade your plan to continue.",
        "pt": "Limite do plano atingido. Faça upgrade para continuar.",
    },
    "proposal_limit_reached": {
        "en": "Proposal limit reached. Upgrade your plan.",
        "pt": "Limite de propostas atingido. Faça upgrade do seu plano.",
    },
    "gig_response_limit_reached": {
        "en": "You have reached your plan's response limit. Upgrade to continue.",
        "pt": "Você atingiu o limite de respostas do seu plano. Faça upgrade para continuar.",
    },
    "insufficient_contact_credits": {
        "en": "Not enough credits to unlock this contact.",
        "pt": "Créditos insuficientes para desbloquear contacto.",
    },
    # -- Proposals --
    "invalid_price": {
        "en": "Proposed price must be greater than zero",
        "pt": "O preço proposto deve ser superior a zero",
    },
    "invalid_timeline": {
        "en": "Timeline must be at least one day",
        "pt": "O prazo deve ser de pelo menos um dia",
    },
    "missing_deliverables": {
        "en": "At least one deliverable is required",
        "pt": "É necessário pelo menos um entregável",
    },
    "missing_title": {
        "en": "Proposal title is required",
        "pt": "O título da proposta é obrigatório",
    },
    "missing_description": {
        "en": "Proposal description is required",
        "pt": "A descrição da proposta é obrigatória",
    },
    "gig_not_open": {
        "en": "This gig is not accepting proposals",
        "pt": "Este gig não está a aceitar propostas",
    },
    "own_gig": {
        "en": "You cannot respond to your own gig",
        "pt": "Você não pode responder à sua própria gig",
    },
    "proposal_not_found": {
        "en": "Proposal not found",
        "pt": "Proposta não encontrada",
    },
    "parent_proposal_not_found": {
        "en": "Parent proposal not found",
        "pt": "Proposta original não encontrada",
    },
    "nested_counter_proposal": {
        "en": "A counter-proposal must reference an original proposal",
        "pt": "Uma contraproposta deve referir uma proposta original",
    },
    "proposal_not_pending": {
        "en": "Proposal is no longer pending",
        "pt": "A proposta já não está pendente",
    },
    "proposal_expired": {
        "en": "This proposal has expired",
        "pt": "Esta proposta expirou",
    },
    "invalid_expiry": {
        "en": "The expiry date must be in the future",
        "pt": "A data de expiração tem de ser futura",
    },
    "not_gig_owner": {
        "en": "Only the gig owner can do this",
        "pt": "Apenas o autor do gig pode fazer isto",
    },
    "not_gig_participant": {
        "en": "Only the gig's client or provider can view this",
        "pt": "Apenas o cliente ou o prestador do gig podem ver isto",
    },
    "proposal_rejected_default": {
        "en": "Proposal rejected",
        "pt": "Proposta rejeitada",
    },
    # -- Completions --
    "gig_not_in_progress": {
        "en": "Gig is not in progress",
        "pt": "O gig não está em curso",
    },
    "completion_already_pending": {
        "en": "A completion request is already pending for this gig",
        "pt": "Já existe um pedido de conclusão pendente para este gig",
    },
    "completion_not_found": {
        "en": "Completion not found",
        "pt": "Pedido de conclusão não encontrado",
    },
    "completion_not_pending": {
        "en": "Completion is not pending",
        "pt": "O pedido de conclusão não está pendente",
    },
    "not_gig_client": {
        "en": "Unauthorized: You are not the client for this gig",
        "pt": "Não autorizado: não é o cliente deste gig",
    },
    "not_gig_provider": {
        "en": "Unauthorized: You are not the provider for this gig",
        "pt": "Não autorizado: não é o profissional deste gig",
    },
    "missing_completion_description": {
        "en": "Please describe the work you delivered",
        "pt": "Descreva o trabalho realizado",
    },
    "missing_rejection_reason": {
        "en": "Please explain what needs to change",
        "pt": "Indique o que precisa de ser alterado",
    },
    # -- Gigs --
    "invalid_gig_transition": {
        "en": "This gig cannot move from '{current}' to '{target}'",
        "pt": "Este gig não pode passar de '{current}' para '{target}'",
    },
    # -- Wallet --
    "invalid_amount": {
        "en": "Please enter a valid amount greater than 0.",
        "pt": "Introduza um montante válido superior a 0.",
    },
    "insufficient_funds": {
        "en": "You cannot withdraw more than your current balance.",
        "pt": "Não pode levantar mais do que o seu saldo atual.",
    },
    "payment_required": {
        "en": "Your wallet does not cover this plan. Complete the card payment first.",
        "pt": "O saldo da carteira não cobre este plano. Conclua primeiro o pagamento com cartão.",
    },
    # -- Conversations --
    "conversation_not_found": {
        "en": "Conversation not found",
        "pt": "Conversa não encontrada",
    },
    "not_participant": {
        "en": "You are not part of this conversation",
        "pt": "Não faz parte desta conversa",
    },
    "empty_message": {
        "en": "Message cannot be empty",
        "pt": "A mensagem não pode estar vazia",
    },
}


def resolve_locale(locale: Optional[str]) -> str:
    """Return a locale the catalogue knows, falling back to the default."""
    for candidate in (locale, settings.default_locale):
        if candidate:
            short = candidate.split("-")[0].split("_")[0].lower()
            if short in ("en", "pt"):
                return short
    return FALLBACK_LOCALE


def translate(key: str, locale: Optional[str] = None, **params: Any) -> str:
    """Look up ``key`` in the catalogue and format it with ``params``.

    Unknown keys are returned verbatim so a missing entry never masks the
    underlying error.
    """
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    text = entry.get(resolve_locale(locale)) or entry[FALLBACK_LOCALE]
    return text.format(**params) if params else text
