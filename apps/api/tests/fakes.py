import copy

from branddna_api.services.extraction.base import ExtractionResult
from branddna_api.services.provenance import ExtractionChannel, records_for_document

CHANNEL_CONFIDENCE = {
    ExtractionChannel.LLM_ANALYSIS: 85,
    ExtractionChannel.PAGE_METADATA: 70,
    ExtractionChannel.NO_CONTENT: 40,
}

RICH_DOCUMENT = {
    "identity": {"official_name": "Acme", "tagline": "Tools for makers", "year_founded": "1999"},
    "voice": {"tone_descriptors": ["bold"], "forbidden_words": []},
    "messaging": {"pillars": ["quality", "speed"]},
    "products": {"offerings": [{"name": "Anvil", "description": "Heavy"}]},
    "audience": {"primary_segments": ["makers"]},
    "proof": {"testimonials": ["Great anvils"]},
    "visual_identity": {"color_palette": ["#ff0000"], "typography": {"font_families": ["Inter"]}},
    "creative_guidelines": {"cta_style": "Direct"},
    "seo": {"top_keywords": ["anvils"]},
    "competitive": {"competitors": ["Globex"]},
    "compliance": {"required_disclaimers": ["Use with care"]},
}

SPARSE_DOCUMENT = {"identity": {"official_name": "Acme"}}


class FakeExtractor:
    """Returns queued documents in order, repeating the last one; can be told to fail."""

    def __init__(self, *documents, channel=ExtractionChannel.LLM_ANALYSIS):
        self.documents = [copy.deepcopy(d) for d in documents] or [copy.deepcopy(RICH_DOCUMENT)]
        self.channel = channel
        self.calls = []
        self.error = None

    def queue(self, *documents):
        self.documents = [copy.deepcopy(d) for d in documents]

    def extract(self, name, url, timeout=None):
        self.calls.append((name, url, timeout))
        if self.error is not None:
            raise self.error
        document = self.documents.pop(0) if len(self.documents) > 1 else self.documents[0]
        document = copy.deepcopy(document)
        return ExtractionResult(
            document=document,
            provenance=records_for_document(document, url, CHANNEL_CONFIDENCE[self.channel]),
            channel=self.channel,
            source_url=url,
        )
