import asyncio, logging, time
from typing import Optional
from langgraph.graph import StateGraph, END
from .illustrations import IllustrationResolver, clean_query, proxied_url
from .llm import StoryLLM
from .models import (
    GeneratedStory,
    IllustrationReference,
    OrchestrationState,
    StoryParameters,
    StoryStep,
)
from .parsing import assemble_story_text, generate_story_title, strip_step_marker

logger = logging.getLogger(__name__)

def _proxied(ref: IllustrationReference, proxy_base: Optional[str]) -> IllustrationReference:
    return IllustrationReference(url=proxied_url(proxy_base, ref.url), attribution=ref.attribution)

class StoryPipeline:
    """story_text -> illustrations -> assemble, compiled once per instance."""

    def __init__(self, llm: StoryLLM, resolver: IllustrationResolver):
        self.llm = llm
        self.resolver = resolver
        self.graph = self.build_graph()

    async def node_story_text(self, state: OrchestrationState) -> dict:
        logger.info(f"Generating story text for '{state.request.specific_activity}'")
        story_text = await self.llm.derive(state.request)
        return {"story_text": story_text}

    async def node_illustrations(self, state: OrchestrationState) -> dict:
        assert state.story_text
        activity = state.request.specific_activity
        cover_terms = state.story_text.cover_terms or [f"{activity} cartoon illustration"]
        tasks = [self.resolver.resolve(cover_terms, "Cartoon illustration of " + activity)]
        for idx, line in enumerate(state.story_text.steps):
            step_text = strip_step_marker(line)
            terms = state.story_text.step_terms[idx] if idx < len(state.story_text.step_terms) else []
            tasks.append(self.resolver.resolve(terms or [clean_query(step_text)], step_text))

        logger.info(f"Resolving {len(tasks)} illustrations")
        cover, *steps = await asyncio.gather(*tasks)
        return {
            "cover": _proxied(cover, state.proxy_base),
            "step_illustrations": [_proxied(ref, state.proxy_base) for ref in steps],
        }

    async def node_assemble(self, state: OrchestrationState) -> dict:
        assert state.story_text and state.cover
        step_images = []
        for idx, line in enumerate(state.story_text.steps):
            ref = state.step_illustrations[idx] if idx < len(state.step_illustrations) else None
            step_images.append(StoryStep(
                step_number=idx + 1,
                step_text=strip_step_marker(line),
                image_url=ref.url if ref else None,
                attribution=ref.attribution if ref else None,
            ))
        story = GeneratedStory(
            id=f"story-{int(time.time() * 1000)}",
            title=generate_story_title(state.request),
            story=assemble_story_text(state.story_text),
            image_url=state.cover.url,
            image_attribution=state.cover.attribution,
            step_images=step_images,
            request=state.request,
        )
        return {"story": story}

    def build_graph(self):
        g = StateGraph(OrchestrationState)
        g.add_node("story_text", self.node_story_text)
        g.add_node("illustrations", self.node_illustrations)
        g.add_node("assemble", self.node_assemble)
        g.set_entry_point("story_text")
        g.add_edge("story_text", "illustrations")
        g.add_edge("illustrations", "assemble")
        g.add_edge("assemble", END)
        return g.compile()

    async def run(self, request: StoryParameters, proxy_base: Optional[str] = None) -> GeneratedStory:
        state = OrchestrationState(request=request, proxy_base=proxy_base)
        final_state = await self.graph.ainvoke(state)
        # LangGraph hands back a dict-like of channel values
        story = final_state.get("story") if hasattr(final_state, "get") else final_state.story
        logger.info(f"Pipeline completed: {story.title}")
        return story
