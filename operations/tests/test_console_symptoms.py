from operations.console import uploads
from operations.console.client import ApiError
from operations.console.symptoms import SYMPTOMS_REQUIRED, SymptomChecker
from operations.console.uploads import Attachment, AttachmentSelection


class FormClient:
    def __init__(self, response=None, error=None):
        self.response = response or {'ok': True, 'demo_mode': False, 'ai_response': 'POSSIBLE CONDITIONS:'}
        self.error = error
        self.posts = []

    def post(self, path, data=None, files=None, **kwargs):
        self.posts.append({'path': path, 'data': data, 'files': files})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, path, **kwargs):
        return {'ok': True, 'history': [{'id': 1}]}


def test_selection_is_all_or_nothing():
    selection = AttachmentSelection()
    assert selection.add([Attachment('a.pdf', 10), Attachment('b.png', 10)]) is None
    assert selection.add([Attachment('c.jpg', 10), Attachment('virus.exe', 10)]) == uploads.BAD_FILE_TYPE
    assert [f.name for f in selection.files] == ['a.pdf', 'b.png']

    big = Attachment('scan.JPEG', uploads.MAX_FILE_BYTES + 1)
    assert selection.add([big]) == uploads.FILE_TOO_LARGE
    assert len(selection) == 2

    four = [Attachment(f'{i}.doc', 1) for i in range(4)]
    assert selection.add(four) == uploads.TOO_MANY_FILES
    assert len(selection) == 2
    assert selection.add(four[:3]) is None
    assert len(selection) == 5


def test_detach_ignores_index_outside_selection():
    checker = SymptomChecker(FormClient(), symptoms='Rash')
    checker.attach(Attachment('a.pdf', 10))
    checker.attach(Attachment('b.png', 10))
    checker.detach(9)
    checker.detach(-1)
    assert [f.name for f in checker.attachments.files] == ['a.pdf', 'b.png']
    checker.detach(0)
    assert [f.name for f in checker.attachments.files] == ['b.png']
    assert checker.attachments.remove(5) is None


def test_upload_parts_carry_content_type():
    part = Attachment.from_bytes('report.docx', b'PK').as_upload()
    assert part == ('files', ('report.docx', b'PK',
                              'application/vnd.openxmlformats-officedocument.wordprocessingml.document'))


def test_blank_symptoms_never_reach_the_server():
    client = FormClient()
    checker = SymptomChecker(client, symptoms='  \n ')
    assert not checker.can_submit()
    assert checker.analyze() is None
    assert checker.error == SYMPTOMS_REQUIRED
    assert client.posts == []


def test_symptoms_and_files_posted_as_multipart():
    client = FormClient()
    checker = SymptomChecker(client, symptoms=' Fever, cough ', patient_id='12')
    assert checker.attach(Attachment.from_bytes('xray.png', b'\x89PNG'))
    assert not checker.attach(Attachment('setup.exe', 1))
    assert checker.toaster.errors() == [uploads.BAD_FILE_TYPE]

    result = checker.analyze()
    assert result['ai_response'] == 'POSSIBLE CONDITIONS:'
    [sent] = client.posts
    assert sent['path'] == '/ai/diagnose'
    assert sent['data'] == {'symptoms': 'Fever, cough', 'patient_id': '12'}
    assert sent['files'] == [('files', ('xray.png', b'\x89PNG', 'image/png'))]
    assert checker.loading is False
    assert checker.toaster.last.message == 'AI analysis complete!'


def test_no_files_sends_no_file_parts():
    client = FormClient(response={'ok': True, 'demo_mode': True, 'ai_response': 'demo'})
    checker = SymptomChecker(client, symptoms='Headache')
    checker.analyze()
    assert client.posts[0]['files'] is None
    assert checker.toaster.last.level == 'info'


def test_server_error_is_shown():
    client = FormClient(error=ApiError('Too many requests. Please wait a moment and try again.', status=429))
    checker = SymptomChecker(client, symptoms='Headache')
    assert checker.analyze() is None
    assert checker.error.startswith('Too many requests')
    assert checker.toaster.errors() == [checker.error]
    assert checker.loading is False


def test_history_needs_a_patient():
    assert SymptomChecker(FormClient()).history() == []
    assert SymptomChecker(FormClient(), patient_id='3').history() == [{'id': 1}]
