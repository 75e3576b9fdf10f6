"""
RAG prompt builder.

Renders the knowledge-base prompt sent to the language model together
with the assembled context.
"""

from notemind.core.tracing import MetricsCollector

NO_RESULTS_MESSAGE = (
    "I couldn't find relevant content in your knowledge base for this query. "
    "Try using different keywords, adding more content, or switching search strategies."
)

EMPTY_ANSWER_MESSAGE = (
    "I couldn't process your request properly. Please try rephrasing your question."
)

SYSTEM_PROMPT = (
    "You are a research assistant answering questions from the user's personal "
    "knowledge base of notes and video transcripts. Base every statement on the "
    "provided sources and say so when the sources do not cover the question."
)

ANSWER_INSTRUCTIONS = """Please provide a comprehensive answer based on the knowledge base above. Include:
1. Direct answers from the sources
2. Connections between different pieces of information
3. Key insights and implications
4. Suggest follow-up questions if relevant"""


class PromptBuilder:
    """Builds the prompts used by ``SearchOrchestrator.answer``."""

    def __init__(self, system_prompt: str = SYSTEM_PROMPT):
        self.system_prompt = system_prompt
        self.metrics = MetricsCollector(namespace="semantic.prompt_builder")

    def build_rag_prompt(
        self,
        context: str,
        query: str,
        quality: float,
        strategy: str,
        source_count: int,
    ) -> str:
        """
        Build the knowledge-base prompt.

        Args:
            context: Output of ContextBuilder.build
            query: The user's question
            quality: Result-set quality in [0, 1]
            strategy: Strategy that produced the results
            source_count: Number of results behind the context

        Returns:
            Prompt ending in ``Answer:``
        """
        header = "\n".join(
            [
                f"Context Quality: {quality * 100:.1f}%",
                f"Search Strategy: {strategy}",
                f"Relevant Sources: {source_count}",
            ]
        )
        prompt = (
            f"{header}\n\n"
            f"KNOWLEDGE BASE:\n{context}\n\n"
            f"USER QUESTION: {query}\n\n"
            f"{ANSWER_INSTRUCTIONS}\n\n"
            "Answer:"
        )
        self.metrics.increment("prompts_built")
        self.metrics.gauge("last_prompt_chars", len(prompt))
        return prompt
