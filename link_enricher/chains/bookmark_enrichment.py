"""
Bookmark Enrichment Chains.

LangChain LCEL chains for content analysis (tags + summary) and for
extracting bookmark-worthy URLs from a page.
"""

from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from link_enricher.models.analysis import ContentAnalysis, ExtractedUrls

ANALYSIS_SYSTEM_PROMPT = """You are an expert at categorizing web content for a bookmark library.
Your task is to:
1. Generate 3-5 relevant tags that categorize the content
2. Write a concise 1-2 sentence summary of what the content is about

OUTPUT INSTRUCTIONS:
- Tags are lowercase, single words or short hyphenated phrases
- Prefer specific topics (e.g. "rust", "postgres") over generic ones (e.g. "article")
- The summary describes the content itself, not the website
- If the content is empty or unreadable, infer what you can from the URL"""

ANALYSIS_USER_PROMPT = """Analyze this content for bookmarking.

URL: {url}

Content:
{content}"""

URL_EXTRACTION_SYSTEM_PROMPT = """You are analyzing a web page to extract the most relevant and valuable URLs for bookmarking.

Focus on:
- Main article or content links (not navigation, footer, or sidebar links)
- Links that lead to substantive content (articles, resources, tools, repositories)
- Links that are likely to be worth saving for later reference

OUTPUT INSTRUCTIONS:
- Return at most {max_urls} URLs, most relevant first
- Only return valid, complete URLs starting with http:// or https://
- Do not include the source URL itself
- If no relevant URLs are found, return an empty list"""

URL_EXTRACTION_USER_PROMPT = """Source URL: {url}

Page Content:
{content}"""


def create_content_analysis_chain(llm: ChatOpenAI) -> Runnable:
    """
    Create a content analysis chain using LCEL with Structured Output.

    Parameters
    ----------
    llm : ChatOpenAI
        The language model to use.

    Returns
    -------
    Runnable
        A chain that takes {"url": str, "content": str} and returns
        ContentAnalysis.
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", ANALYSIS_SYSTEM_PROMPT),
            ("user", ANALYSIS_USER_PROMPT),
        ]
    )
    structured_llm = llm.with_structured_output(ContentAnalysis)
    return prompt | structured_llm


def create_url_extraction_chain(llm: ChatOpenAI) -> Runnable:
    """
    Create a URL extraction chain using LCEL with Structured Output.

    Parameters
    ----------
    llm : ChatOpenAI
        The language model to use.

    Returns
    -------
    Runnable
        A chain that takes {"url": str, "content": str, "max_urls": int}
        and returns ExtractedUrls.
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", URL_EXTRACTION_SYSTEM_PROMPT),
            ("user", URL_EXTRACTION_USER_PROMPT),
        ]
    )
    structured_llm = llm.with_structured_output(ExtractedUrls)
    return prompt | structured_llm
