# portfolio_newsletter/newsletter/dependencies.py
from fastapi import Depends, Request
from portfolio_newsletter.database.connection import connection_dependency
from portfolio_newsletter.database.subscriber_repository import SubscriberRepository
from portfolio_newsletter.database.send_repository import NewsletterSendRepository
from portfolio_newsletter.newsletter.service import NewsletterService
from portfolio_newsletter.services.email_service import EmailService

def get_newsletter_service(request: Request) -> NewsletterService:
    return request.app.state.newsletter_service

def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service

async def get_subscriber_repository(connection=Depends(connection_dependency)) -> SubscriberRepository:
    return SubscriberRepository(connection)

async def get_send_repository(connection=Depends(connection_dependency)) -> NewsletterSendRepository:
    return NewsletterSendRepository(connection)
