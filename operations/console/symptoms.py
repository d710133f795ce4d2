"""
Symptom checker form.

Blank symptoms are caught here and never reach the network. Everything
else goes to ``POST /ai/diagnose`` as multipart form data with the
selected attachments.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .client import ApiError, DashboardClient
from .toasts import Toaster
from .uploads import Attachment, AttachmentSelection

logger = logging.getLogger(__name__)

SYMPTOMS_REQUIRED = 'Please enter symptoms'
ANALYSIS_FAILED = 'Failed to analyze symptoms'


@dataclass
class SymptomChecker:
    client: DashboardClient
    toaster: Toaster = field(default_factory=Toaster)
    attachments: AttachmentSelection = field(default_factory=AttachmentSelection)
    symptoms: str = ''
    patient_id: Optional[str] = None
    result: Optional[dict] = None
    error: Optional[str] = None
    loading: bool = False

    def attach(self, *files: Attachment) -> bool:
        reason = self.attachments.add(files)
        if reason:
            self.toaster.error(reason)
            return False
        return True

    def detach(self, index: int) -> None:
        self.attachments.remove(index)

    def can_submit(self) -> bool:
        return bool(self.symptoms.strip()) and not self.loading

    def analyze(self) -> Optional[dict]:
        """Submit the form; returns the diagnosis payload or None."""
        self.error = None
        if not self.symptoms.strip():
            self.error = SYMPTOMS_REQUIRED
            self.toaster.error(SYMPTOMS_REQUIRED)
            return None

        form = {'symptoms': self.symptoms.strip()}
        if self.patient_id:
            form['patient_id'] = self.patient_id
        self.loading = True
        try:
            self.result = self.client.post('/ai/diagnose', data=form, files=self.attachments.uploads() or None)
        except ApiError as exc:
            self.error = exc.message or ANALYSIS_FAILED
            self.toaster.api_error(exc, ANALYSIS_FAILED)
            return None
        finally:
            self.loading = False
        if self.result.get('demo_mode'):
            self.toaster.info('AI service not configured, showing a demo analysis')
        else:
            self.toaster.success('AI analysis complete!')
        return self.result

    def history(self) -> list:
        if not self.patient_id:
            return []
        try:
            return self.client.get(f'/ai/history/{self.patient_id}').get('history', [])
        except ApiError as exc:
            logger.info("could not load AI history for %s: %s", self.patient_id, exc.message)
            return []
