"""
Amazon Polly getting started.

Lists voices, synthesizes plain text and SSML to MP3, and uses a custom
pronunciation lexicon.
"""

from contextlib import closing
from typing import List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Lexicon names: up to 20 alphanumeric characters
LEXICON_NAME_MAX = 20

LEXICON_CONTENT = """<?xml version="1.0" encoding="UTF-8"?>
<lexicon version="1.0"
      xmlns="http://www.w3.org/2005/01/pronunciation-lexicon"
      xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
      xsi:schemaLocation="http://www.w3.org/2005/01/pronunciation-lexicon
        http://www.w3.org/TR/2007/CR-pronunciation-lexicon-20071212/pls.xsd"
      alphabet="ipa"
      xml:lang="en-US">
  <lexeme>
    <grapheme>AWS</grapheme>
    <alias>Amazon Web Services</alias>
  </lexeme>
</lexicon>
"""

PLAIN_TEXT = "Hello, welcome to Amazon Polly. This is a sample text to speech conversion."
SSML_TEXT = (
    "<speak>Hello! <break time='1s'/> This is a sample of "
    "<emphasis>SSML enhanced speech</emphasis>.</speak>"
)
LEXICON_TEXT = "I work with AWS every day."


@register
class PollyGettingStarted(Tutorial):
    slug = "polly-getting-started"
    title = "Amazon Polly Getting Started"
    description = "Convert text and SSML to speech and apply a custom lexicon."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.polly = self.client("polly")
        self.lexicon_name = self.name("lexicon", max_length=LEXICON_NAME_MAX, alphanumeric=True)

    def steps(self) -> List[Step]:
        return [
            ("List voices", self.list_voices),
            ("Synthesize text", self.synthesize_text),
            ("Synthesize SSML", self.synthesize_ssml),
            ("Upload lexicon", self.put_lexicon),
            ("Synthesize with lexicon", self.synthesize_with_lexicon),
        ]

    def synthesize(
        self,
        filename: str,
        text: str,
        voice_id: str,
        text_type: str = "text",
        lexicon_names: Optional[List[str]] = None,
    ) -> None:
        params = {
            "OutputFormat": "mp3",
            "VoiceId": voice_id,
            "Text": text,
            "TextType": text_type,
        }
        if lexicon_names:
            params["LexiconNames"] = lexicon_names

        response = self.polly.synthesize_speech(**params)
        with closing(response["AudioStream"]) as stream:
            audio = stream.read()
        if not audio:
            raise VerificationError(f"Polly returned no audio for {filename}")

        path = self.local_file(filename, audio)
        self.outputs.setdefault("audio_files", []).append(str(path))
        logger.info(f"Successfully created {path} ({len(audio)} bytes)")

    def list_voices(self) -> None:
        response = self.polly.describe_voices(LanguageCode="en-US")
        voices = response.get("Voices", [])[:3]
        for voice in voices:
            logger.info(f"Voice: {voice['Id']} {voice['LanguageCode']} {voice['Gender']}")
        self.outputs["voices"] = [voice["Id"] for voice in voices]

    def synthesize_text(self) -> None:
        self.synthesize("output.mp3", PLAIN_TEXT, "Joanna")

    def synthesize_ssml(self) -> None:
        self.synthesize("ssml-output.mp3", SSML_TEXT, "Matthew", text_type="ssml")

    def put_lexicon(self) -> None:
        self.local_file("example.pls", LEXICON_CONTENT)
        self.polly.put_lexicon(Name=self.lexicon_name, Content=LEXICON_CONTENT)
        self.tracker.track(
            "Polly Lexicon",
            self.lexicon_name,
            delete=lambda: self.polly.delete_lexicon(Name=self.lexicon_name),
            hint=f"aws polly delete-lexicon --name {self.lexicon_name}",
        )

        names = [lexicon["Name"] for lexicon in self.polly.list_lexicons().get("Lexicons", [])]
        logger.info(f"Available lexicons: {names}")

        details = self.polly.get_lexicon(Name=self.lexicon_name)
        attributes = details.get("LexiconAttributes", {})
        logger.info(
            f"Lexicon {details['Lexicon']['Name']}: "
            f"{attributes.get('LexemesCount', 0)} lexemes, alphabet {attributes.get('Alphabet')}"
        )
        self.outputs["lexicon_name"] = self.lexicon_name

    def synthesize_with_lexicon(self) -> None:
        self.synthesize("lexicon-output.mp3", LEXICON_TEXT, "Joanna", lexicon_names=[self.lexicon_name])
