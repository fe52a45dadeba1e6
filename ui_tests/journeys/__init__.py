"""
Journeys against a live CCDCS deployment.

Each journey scrapes what one or more roles can see, reconciles it with the
expected set and records the outcome under a category for the run summary.

Journey Order:
    00 - Navigation links (logged out, logged in, case pages)
    01 - Sticky notes visible to each role in Review Evidence
    02 - ROCA entries for unrestricted and restricted uploads
    03 - Section document lists and restricted access
    04 - Review Evidence documents against the section tables
    05 - Document removal, moves and edits in the section tables and ROCA
"""
