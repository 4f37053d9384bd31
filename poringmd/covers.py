"""Cover-page templates prepended to a note, ending in a manual page break."""

from __future__ import annotations

from collections.abc import Mapping

SUST_EEE_COVER = """center[#Shahjalal University of Science and Technology]
//1

![Image|200](SUST_LOGO)

//1

center[blue[##Department of Electrical & Electronic Engineering] ]
//1

center[###Course Title: ]
center[###Course Code:]
//1

center[red[###Lab Report / Assignment]]
//2

###Experiment no. :
###**Experiment name**:

| **Submitted By:** | **Submitted To:** |
| :---------------- | :---------------- |
| Name <br> Reg. No. :| Teacher's name  <br> Designation <br> Department |


center[####Submission date : [today]]

---
"""

COVER_TEMPLATES = {
    "sust_eee": SUST_EEE_COVER,
}


def available_cover_templates(custom: Mapping[str, str] | None = None) -> dict[str, str]:
    """Built-in templates followed by user templates; a user name can shadow a built-in."""
    templates = dict(COVER_TEMPLATES)
    templates.update(custom or {})
    return templates


def apply_cover_page(content: str, template: str) -> str:
    return template + content
