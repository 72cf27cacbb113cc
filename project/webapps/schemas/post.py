# webapps/schemas/post.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from webapps.core.exceptions import ValidationError, PayloadTooLargeError
from webapps.schemas.common import parse_id

MAX_TITLE_LENGTH = 255


class PostCreate(BaseModel):
    title: str
    blog_text: str


class CommentCreate(BaseModel):
    post_id: int
    content: str


class Comment(BaseModel):
    id: int
    content: str
    time_made: Optional[datetime] = None
    user_id: Optional[int] = None
    commenter_name: Optional[str] = None


def parse_post_payload(body) -> PostCreate:
    if not isinstance(body, dict):
        raise ValidationError(["Invalid JSON format or body is missing."])

    title = body.get("title")
    blog_text = body.get("blog_text")
    if not isinstance(title, str) or not isinstance(blog_text, str) or not title.strip() or not blog_text.strip():
        raise ValidationError(["Title and content are required."])
    if len(title) > MAX_TITLE_LENGTH:
        raise PayloadTooLargeError(["Title is too long."])

    return PostCreate(title=title.strip(), blog_text=blog_text)


def parse_comment_payload(body) -> CommentCreate:
    if not isinstance(body, dict):
        raise ValidationError(["Invalid JSON format or body is missing."])

    content = body.get("content")
    if not isinstance(content, str) or not content.strip() or not body.get("postId"):
        raise ValidationError(["Comment content and post ID are required."])

    return CommentCreate(post_id=parse_id(body.get("postId"), "post ID"), content=content.strip())
