import string

from coopvote.models.election_model import AnonymityInfo
from coopvote.models.results_model import CandidateResult, DisplayReport, TallyReport


def anonymous_label(rank_index: int) -> str:
    """Label for the candidate at ``rank_index`` (0-based) of a sorted position.

    The first 26 ranks get letters, later ranks their 1-based number.
    """
    if rank_index < len(string.ascii_uppercase):
        return f"Candidate {string.ascii_uppercase[rank_index]}"
    return f"Candidate {rank_index + 1}"


class AnonymityProjector:
    """Turns a tally report into what a results screen may show."""

    def project(self, report: TallyReport, is_anonymous: bool, is_admin_requester: bool) -> DisplayReport:
        results = report.results
        if is_anonymous:
            results = [
                position.model_copy(
                    update={
                        "candidates": [
                            self._mask(candidate, rank_index)
                            for rank_index, candidate in enumerate(position.candidates)
                        ]
                    }
                )
                for position in report.results
            ]

        return DisplayReport(
            election=report.election.model_copy(update={"is_anonymous": is_anonymous}),
            anonymity=AnonymityInfo(
                is_enabled=is_anonymous,
                can_reveal=is_admin_requester,
                is_revealed=not is_anonymous,
            ),
            results=results,
            summary=report.summary,
            branch_breakdown=report.branch_breakdown,
        )

    @staticmethod
    def _mask(candidate: CandidateResult, rank_index: int) -> CandidateResult:
        # Counts and branch breakdowns stay; only identity goes
        return candidate.model_copy(
            update={
                "name": anonymous_label(rank_index),
                "member_id": None,
                "email": None,
                "image_url": None,
                "bio": None,
                "qualifications": None,
            }
        )
