"""Shared fixtures."""

import pytest

from skipmap.line_model import build_lines
from skipmap.models import TranscriptLine

SAMPLE_TITLE = "Why Egg Prices Are So High"
SAMPLE_DURATION = 502.0

# NPR "The Indicator" style transcript: sponsor reads on lines 5 and 6,
# a funding credit on line 19
SAMPLE_TRANSCRIPT_HTML = """
<div class="transcript">
  <p><b>DARIAN WOODS, HOST:</b> This is THE INDICATOR FROM PLANET MONEY. I'm Darian Woods.</p>
  <p><b>WAILIN WONG, HOST:</b> And I'm Wailin Wong. If you've been to the grocery store lately, you may have noticed something painful in the egg aisle.</p>
  <p><b>DARIAN WOODS:</b> Eggs have gotten really expensive. Like, we're talking six, seven dollars for a dozen eggs at some stores. And it's not just a minor uptick - prices have roughly doubled compared to a year ago.</p>
  <p><b>WAILIN WONG:</b> Today on the show, we crack open the economics of the egg market. Why are prices so high, who benefits, and when might we see some relief?</p>

  <p><b>DARIAN WOODS:</b> Support for this podcast and the following message come from Google Cloud. Whatever satisfies your curiosity, from food to fashion to flowers, Google Cloud helps the companies behind those answers build, transform, and grow. Explore solutions at cloud.google.com.</p>

  <p><b>WAILIN WONG:</b> This message comes from NPR sponsor Capital One. With the Capital One Venture Card, you earn unlimited double miles on every purchase, every day. What's in your wallet? Terms apply. See capitalone.com for details.</p>

  <p><b>DARIAN WOODS:</b> OK, so let's talk about eggs. The main culprit behind the high prices is avian influenza, also known as bird flu.</p>
  <p><b>WAILIN WONG:</b> Bird flu has been devastating poultry flocks across the country. The USDA reports that more than 100 million birds have been affected since the outbreak began in early 2022.</p>
  <p><b>DARIAN WOODS:</b> And when you lose that many egg-laying hens, the supply drops dramatically. Basic economics tells us that when supply goes down and demand stays the same, prices go up.</p>
  <p><b>WAILIN WONG:</b> But it's not just about the birds that have been lost. There's also a rebuilding period. It takes about five months for a chick to grow into an egg-laying hen. So even after the outbreaks are contained, it takes time for supply to recover.</p>
  <p><b>DARIAN WOODS:</b> Professor Maro Ibarburu at the Egg Industry Center at Iowa State University says the industry is rebuilding, but slowly.</p>
  <p><b>MARO IBARBURU:</b> We see that the flock is recovering, but we still have fewer hens than we had before the outbreak. And the demand has not decreased.</p>
  <p><b>WAILIN WONG:</b> And there's another factor at play here - the cost of production has gone up too. Feed prices, energy costs, transportation - all of those have increased.</p>
  <p><b>DARIAN WOODS:</b> Some consumer advocates have also pointed to potential price gouging by major egg producers. The largest egg company in the US, Cal-Maine Foods, reported record profits even as consumers struggled with high prices.</p>
  <p><b>WAILIN WONG:</b> Cal-Maine has pushed back on those accusations, saying their prices reflect market conditions and increased costs. But several state attorneys general have launched investigations into egg pricing.</p>
  <p><b>DARIAN WOODS:</b> So when might we see some relief? Professor Ibarburu says it depends on bird flu.</p>
  <p><b>MARO IBARBURU:</b> If we don't have new major outbreaks, we could see prices start to come down in the second half of this year. But it's really hard to predict because the virus is unpredictable.</p>

  <p><b>DARIAN WOODS:</b> Support for NPR and the following message come from the Annie E. Casey Foundation, developing solutions to strengthen families and communities. More information is available at aecf.org.</p>

  <p><b>WAILIN WONG:</b> In the meantime, some consumers are finding creative solutions. Backyard chicken coops have seen a surge in popularity. Some stores are putting purchase limits on eggs.</p>
  <p><b>DARIAN WOODS:</b> And interestingly, egg substitutes and plant-based alternatives have seen a bump in sales too. Companies like JUST Egg have reported increased demand.</p>
  <p><b>WAILIN WONG:</b> So the egg crisis is a story about supply shocks, market power, and how one little virus can scramble the entire economy.</p>
  <p><b>DARIAN WOODS:</b> Pun intended.</p>
  <p><b>WAILIN WONG:</b> Always. This episode was produced by Corey Bridges with engineering by Robert Rodriguez. It was fact-checked by Sierra Juarez. Kate Concannon edits the show. THE INDICATOR is a production of NPR.</p>
</div>
"""

# What a model would answer for the sample transcript
SAMPLE_LLM_RESPONSE = """{
  "adBlocks": [
    {"startLine": 5, "endLine": 5, "reason": "Sponsor read for Google Cloud"},
    {"startLine": 6, "endLine": 6, "reason": "Sponsor read for Capital One"},
    {"startLine": 19, "endLine": 19, "reason": "NPR funding credit: Annie E. Casey Foundation"}
  ]
}"""


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_TRANSCRIPT_HTML


@pytest.fixture
def sample_title() -> str:
    return SAMPLE_TITLE


@pytest.fixture
def sample_llm_response() -> str:
    return SAMPLE_LLM_RESPONSE


@pytest.fixture
def sample_lines() -> list[TranscriptLine]:
    from skipmap.transcript_formats import parse_html_transcript

    return parse_html_transcript(SAMPLE_TRANSCRIPT_HTML)


@pytest.fixture
def make_lines():
    """Build a line model from plain strings."""
    def _make(texts: list[str]) -> list[TranscriptLine]:
        return build_lines(texts)
    return _make
