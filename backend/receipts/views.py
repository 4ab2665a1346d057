import logging
from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.http import HttpResponse

from backend.core.roles import Capability, HasCapability
from backend.core.utils import create_audit_log
from .assets import AssetSources
from .generator import render_receipt
from .serializers import ReceiptPayloadSerializer
from .words import amount_in_words, format_inr

logger = logging.getLogger('backend.receipts')


def receipt_asset_sources():
    """Logo and signature locations from settings"""
    return AssetSources(
        logo=getattr(settings, 'RECEIPT_LOGO_SOURCE', None),
        signature=getattr(settings, 'RECEIPT_SIGNATURE_SOURCE', None),
        timeout=getattr(settings, 'RECEIPT_ASSET_TIMEOUT', 10),
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasCapability(Capability.GENERATE_RECEIPTS)])
def generate_receipt(request):
    """Generate a payment receipt PDF and return it as a download"""
    serializer = ReceiptPayloadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    payload = serializer.to_payload()
    result = async_to_sync(render_receipt)(payload, receipt_asset_sources())

    if not result.ok:
        logger.error(f"Receipt generation failed for user {request.user.username}: {result.error}")
        create_audit_log(
            request=request,
            action='receipt_failed',
            model_name='PaymentReceipt',
            object_id='-',
            object_name=payload.received_from,
            changes={'error': result.error}
        )
        return Response(
            {'error': 'Failed to generate receipt', 'detail': result.error},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    document = result.document
    create_audit_log(
        request=request,
        action='receipt_generate',
        model_name='PaymentReceipt',
        object_id=document.reference_number,
        object_name=payload.received_from,
        object_reference=document.reference_number,
        changes={
            'amount': str(payload.amount),
            'payment_mode': payload.payment_mode,
            'date': payload.date,
            'filename': document.filename,
        }
    )

    response = HttpResponse(document.content, content_type=document.content_type)
    response['Content-Disposition'] = f'attachment; filename="{document.filename}"'
    response['X-Receipt-Reference'] = document.reference_number
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasCapability(Capability.GENERATE_RECEIPTS)])
def amount_words_preview(request):
    """Amount in words and figures, for the receipt form preview"""
    amount = request.query_params.get('amount', '')
    try:
        words = amount_in_words(amount)
        formatted = format_inr(amount)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'amount': amount, 'formatted': formatted, 'words': words})
