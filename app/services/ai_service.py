import asyncio
from typing import Iterable, List, Optional, Sequence

from app.logging_config import get_logger
from app.services.customer_context import CustomerContext
from app.services.llm import LLMProvider, assistant_turn, system_turn, user_turn
from app.services.result import AI_EMPTY, AI_ERROR, AI_TIMEOUT, AI_UNAVAILABLE, Result
from app.services.state_machine import MessageSender

logger = get_logger("ai_service")

CUSTOMER_HISTORY_WINDOW = 6
SUMMARY_HISTORY_WINDOW = 20

COMPANY_CONTEXT = """
Você é o assistente virtual da ebeef, uma empresa de carnes nobres e churrasco brasileiro premium.

SOBRE A EMPRESA:
- Nome: ebeef
- Especialidade: Carnes nobres, cortes premium para churrasco, e acessórios
- Localização: Brasil
- Diferencial: Qualidade premium, entrega rápida, atendimento personalizado

PRODUTOS PRINCIPAIS:
- Picanha Premium - A rainha do churrasco (R$ 129,90/kg)
- Costela Gaúcha - Para assar na brasa por 6 horas (R$ 149,90/5kg)
- Maminha - Corte suculento e saboroso (R$ 69,90/kg)
- Cupim - Típico brasileiro, macio e suculento (R$ 89,90/2kg)
- Filé Mignon - Corte nobre e macio (R$ 109,90/kg)
- Contra Filé - Macio com gordura entremeada (R$ 79,90/kg)
- Carne Moída de Primeira - Ideal para hambúrgueres (R$ 24,90/500g)
- Sal Grosso para Churrasco (R$ 9,90/kg)
- Chimichurri Artesanal (R$ 19,90/300ml)

POLÍTICAS:
- Entrega: 24-48 horas dependendo da região
- Pagamento: PIX, cartão de crédito, boleto
- Devoluções: Garantia de satisfação ou troca
- Horário de atendimento: Segunda a Sábado, 8h às 20h

TOM DE COMUNICAÇÃO:
- Amigável e profissional
- Use linguagem informal mas educada (você, não senhor/senhora)
- Demonstre conhecimento sobre churrasco brasileiro
- Seja proativo em sugerir produtos
- Use emojis com moderação (🥩, 🔥, 😊)
- SEMPRE responda em Português Brasileiro
""".strip()

CUSTOMER_INSTRUCTIONS = """INSTRUÇÕES:
1. Responda de forma natural e amigável em português brasileiro
2. Seja útil e proativo em oferecer soluções
3. Se não souber algo específico, diga que vai verificar ou transfira para um atendente
4. Para reclamações ou problemas complexos, sugira transferir para um atendente humano digitando "ATENDENTE"
5. Mantenha respostas concisas (máximo 2-3 parágrafos)
6. Sempre que apropriado, sugira produtos ou promoções relevantes
7. Use emojis com moderação para criar uma experiência agradável"""

OPERATOR_INSTRUCTIONS = """INSTRUÇÕES:
- Gere uma resposta pronta para o operador usar ou adaptar
- Seja profissional mas amigável
- Personalize com base no contexto do cliente
- Mantenha a resposta concisa (2-3 frases)"""

SUMMARY_PROMPT = """Resuma a conversa de atendimento de forma concisa.
Inclua:
- Motivo principal do contato
- Problemas ou solicitações mencionados
- Status atual (resolvido, pendente, etc.)
- Ações necessárias

Formato: Resumo em 3-5 bullet points em português."""

TONE_INSTRUCTIONS = {
    "formal": "Use linguagem formal e profissional",
    "friendly": "Use linguagem amigável e acolhedora, com emojis moderados",
    "apologetic": "Use tom de desculpas sinceras e comprometimento em resolver",
    "enthusiastic": "Use tom entusiasmado e positivo, com emojis",
}
DEFAULT_TONE = "friendly"


def _favorite_names(context: CustomerContext) -> str:
    return ", ".join(favorite.product.name for favorite in context.favorite_products)


def build_customer_info(context: Optional[CustomerContext]) -> str:
    if context is None:
        return ""
    lines = [
        "INFORMAÇÕES DO CLIENTE:",
        f"- Nome: {getattr(context.customer, 'name', None) or 'Não informado'}",
        f"- Tipo: {'Novo cliente' if context.is_new_customer else 'Cliente recorrente'}",
        f"- Total de pedidos: {context.total_orders}",
        f"- Total gasto: R$ {context.total_spent}",
    ]
    if context.favorite_products:
        lines.append(f"- Produtos favoritos: {_favorite_names(context)}")
    if context.last_purchase:
        lines.append(f"- Último pedido: {context.last_purchase.order_number} ({context.last_purchase.status})")
    if context.days_since_last_purchase:
        lines.append(f"- Dias desde último pedido: {context.days_since_last_purchase}")
    return "\n".join(lines)


def build_promotions_info(promotions: Sequence) -> str:
    if not promotions:
        return ""
    lines = ["PROMOÇÕES ATIVAS:"]
    for promotion in promotions:
        lines.append(f"- {promotion.name}: {promotion.description or ''} (código: {promotion.code})")
    return "\n".join(lines)


def history_to_chat(messages: Iterable) -> List[dict]:
    """Stored messages as chat turns: customer lines are `user`, everything else `assistant`."""
    return [
        user_turn(message.content) if message.sender == MessageSender.USER.value else assistant_turn(message.content)
        for message in messages
    ]


class AIResponder:
    """
    Text generation for the customer auto-reply and the operator tools.

    Every call is bounded by `timeout_seconds` and returns a Result; callers
    never see provider exceptions. Failure codes: ai_unavailable, ai_timeout,
    ai_error, ai_empty.
    """

    def __init__(self, provider: Optional[LLMProvider], *, model: Optional[str] = None, timeout_seconds: float = 15.0):
        self.provider = provider
        self.model = model
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        return self.provider is not None

    async def _complete(self, messages: List[dict], *, max_tokens: int, temperature: float, purpose: str) -> Result[str]:
        if self.provider is None:
            return Result.failure("AI provider not configured", AI_UNAVAILABLE)

        try:
            response = await asyncio.wait_for(
                self.provider.generate(messages, model=self.model, temperature=temperature, max_tokens=max_tokens),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"AI {purpose} timed out after {self.timeout_seconds}s",
                extra={"context": {"purpose": purpose}},
            )
            return Result.failure("AI request timed out", AI_TIMEOUT)
        except Exception as e:
            logger.error(f"AI {purpose} failed: {e}", extra={"context": {"purpose": purpose}})
            return Result.failure(str(e), AI_ERROR)

        return Result.success(response.content or "").map(str.strip).ensure(bool, "AI returned empty text", AI_EMPTY)

    async def generate_customer_response(
        self,
        message: str,
        context: Optional[CustomerContext] = None,
        promotions: Sequence = (),
        history: Iterable = (),
    ) -> Result[str]:
        system_prompt = "\n\n".join(
            part
            for part in (COMPANY_CONTEXT, build_customer_info(context), build_promotions_info(promotions), CUSTOMER_INSTRUCTIONS)
            if part
        )
        messages = [system_turn(system_prompt)]
        messages.extend(history_to_chat(history)[-CUSTOMER_HISTORY_WINDOW:])
        messages.append(user_turn(message))

        result = await self._complete(messages, max_tokens=300, temperature=0.7, purpose="customer_response")
        if result.ok:
            logger.info(
                "AI response generated",
                extra={"context": {"message_length": len(message), "response_length": len(result.value)}},
            )
        return result

    async def generate_operator_suggestion(self, message: str, context: Optional[CustomerContext] = None) -> Result[str]:
        customer_info = ""
        if context is not None:
            customer_info = (
                f"Cliente: {getattr(context.customer, 'name', None) or 'Não identificado'}\n"
                f"Tipo: {'Novo' if context.is_new_customer else 'Recorrente'} ({context.total_orders} pedidos)"
            )
            if context.favorite_products:
                customer_info += f"\nFavoritos: {_favorite_names(context)}"

        system_prompt = "\n\n".join(
            part
            for part in (
                "Você é um assistente que ajuda operadores de atendimento da ebeef.\n"
                "Gere uma sugestão de resposta profissional e personalizada.",
                COMPANY_CONTEXT,
                customer_info,
                OPERATOR_INSTRUCTIONS,
            )
            if part
        )
        messages = [
            system_turn(system_prompt),
            user_turn(f'Mensagem do cliente: "{message}"'),
        ]
        return await self._complete(messages, max_tokens=200, temperature=0.7, purpose="operator_suggestion")

    async def improve_message(self, message: str, tone: str = DEFAULT_TONE) -> Result[str]:
        instruction = TONE_INSTRUCTIONS.get(tone, TONE_INSTRUCTIONS[DEFAULT_TONE])
        messages = [
            system_turn(
                "Você melhora mensagens de atendimento ao cliente.\n"
                f"{instruction}\n"
                "Mantenha o significado original mas melhore a clareza e o tom.\n"
                "Responda APENAS com a mensagem melhorada, sem explicações."
            ),
            user_turn(message),
        ]
        return await self._complete(messages, max_tokens=200, temperature=0.5, purpose="improve_message")

    async def summarize_conversation(self, history: Iterable) -> Result[str]:
        turns = history_to_chat(history)[-SUMMARY_HISTORY_WINDOW:]
        if not turns:
            return Result.failure("Conversation has no messages", AI_EMPTY)
        transcript = "\n".join(
            f"{'Cliente' if turn['role'] == 'user' else 'Atendente'}: {turn['content']}" for turn in turns
        )
        messages = [
            system_turn(SUMMARY_PROMPT),
            user_turn(transcript),
        ]
        return await self._complete(messages, max_tokens=200, temperature=0.3, purpose="summarize")
