import html
from collections.abc import Mapping

from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Campaign, Donation, Review, Ticket, NgoVerification
import bleach


def _clean(attrs, fields):
    # bleach escapes bare & and <; store the text itself, minus the tags.
    for field in fields:
        if attrs.get(field):
            attrs[field] = html.unescape(bleach.clean(attrs[field], strip=True))
    return attrs


class InputAliasMixin:
    """
    Accept alternative request keys for writable fields.

    `input_aliases` maps an incoming key (e.g. the camelCase `campaignId`
    older clients send) to the field it fills. The field's own name wins
    when both are present.
    """

    input_aliases = {}

    def to_internal_value(self, data):
        if self.input_aliases and isinstance(data, Mapping):
            data = {key: data[key] for key in data}
            for alias, field in self.input_aliases.items():
                if alias in data:
                    value = data.pop(alias)
                    data.setdefault(field, value)
        return super().to_internal_value(data)


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model with input sanitization"""

    password = serializers.CharField(write_only=True, required=True, validators=[validate_password])
    password2 = serializers.CharField(write_only=True, required=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'password2', 'first_name', 'last_name',
                  'role', 'is_ngo', 'is_staff', 'phone_number', 'created_at', 'updated_at']
        read_only_fields = ['id', 'role', 'is_ngo', 'is_staff', 'created_at', 'updated_at']

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('password2'):
            raise serializers.ValidationError({"password": "Password fields didn't match."})

        return _clean(attrs, ['first_name', 'last_name'])

    def create(self, validated_data):
        validated_data.pop('password2')
        user = User.objects.create_user(**validated_data)
        return user


class UserProfileSerializer(serializers.ModelSerializer):
    """Serializer for user profile view (no credentials)"""

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'role', 'is_ngo',
                  'is_staff', 'phone_number', 'created_at']
        read_only_fields = fields


class CampaignSerializer(InputAliasMixin, serializers.ModelSerializer):
    """Serializer for Campaign; ledger and verification fields are server-owned"""

    input_aliases = {
        'targetAmount': 'target_amount',
        'beneficiaryName': 'beneficiary_name',
        'imageUrl': 'image_url',
        'hospitalName': 'hospital_name',
        'hospitalEmail': 'hospital_email',
        'isTemporary': 'is_temporary',
    }

    created_by_name = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()

    class Meta:
        model = Campaign
        fields = ['id', 'unique_code', 'title', 'description', 'cause', 'target_amount',
                  'collected_amount', 'progress', 'beneficiary_name', 'image_url',
                  'hospital_name', 'hospital_email', 'is_temporary', 'verified',
                  'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = ['id', 'unique_code', 'collected_amount', 'verified',
                            'created_by', 'created_at', 'updated_at']

    def get_created_by_name(self, obj):
        if obj.created_by:
            return obj.created_by.display_name
        return None

    def get_progress(self, obj):
        if not obj.target_amount:
            return 0.0
        return round(float(obj.collected_amount) / float(obj.target_amount) * 100, 1)

    def validate_target_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Target amount must be greater than 0")
        return value

    def validate(self, attrs):
        return _clean(attrs, ['title', 'description', 'beneficiary_name', 'hospital_name'])


class DonationSerializer(InputAliasMixin, serializers.ModelSerializer):
    """Serializer for Donation; donor is resolved from the bearer token, never the body"""

    input_aliases = {
        'campaignId': 'campaign',
        'tipAmount': 'tip_amount',
        'donorName': 'donor_name',
    }

    campaign_code = serializers.CharField(source='campaign.unique_code', read_only=True)

    class Meta:
        model = Donation
        fields = ['id', 'campaign', 'campaign_code', 'amount', 'tip_amount',
                  'donor', 'donor_name', 'message', 'created_at']
        read_only_fields = ['id', 'donor', 'created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value

    def validate_tip_amount(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Tip cannot be negative")
        return value

    def validate(self, attrs):
        return _clean(attrs, ['donor_name', 'message'])


class ReviewSerializer(serializers.ModelSerializer):
    """Serializer for public reviews"""

    class Meta:
        model = Review
        fields = ['id', 'reviewer_name', 'rating', 'comment', 'user', 'created_at']
        read_only_fields = ['id', 'user', 'created_at']

    def validate(self, attrs):
        return _clean(attrs, ['reviewer_name', 'comment'])


class TicketSerializer(serializers.ModelSerializer):
    """Serializer for support tickets as submitted by users"""

    class Meta:
        model = Ticket
        fields = ['id', 'name', 'email', 'subject', 'message', 'status',
                  'admin_notes', 'user', 'created_at', 'updated_at']
        read_only_fields = ['id', 'status', 'admin_notes', 'user', 'created_at', 'updated_at']

    def validate(self, attrs):
        return _clean(attrs, ['name', 'subject', 'message'])


class AdminTicketSerializer(TicketSerializer):
    """Admins may move a ticket through its statuses and leave notes"""

    class Meta(TicketSerializer.Meta):
        read_only_fields = ['id', 'name', 'email', 'subject', 'message', 'user',
                            'created_at', 'updated_at']

    def validate(self, attrs):
        return _clean(attrs, ['admin_notes'])


class NgoVerificationSerializer(serializers.ModelSerializer):
    """Serializer for NGO verification requests"""

    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = NgoVerification
        fields = ['id', 'user', 'user_email', 'organization_name', 'registration_number',
                  'document_url', 'contact_email', 'contact_phone', 'address',
                  'verified', 'requested_at', 'reviewed_at']
        read_only_fields = ['id', 'user', 'verified', 'requested_at', 'reviewed_at']

    def validate(self, attrs):
        return _clean(attrs, ['organization_name', 'registration_number', 'address'])


class NgoDecisionSerializer(serializers.Serializer):
    verified = serializers.BooleanField()


class HospitalVerificationRequestSerializer(InputAliasMixin, serializers.Serializer):
    input_aliases = {'campaignId': 'campaign_id', 'hospitalEmail': 'hospital_email'}

    campaign_id = serializers.IntegerField()
    hospital_email = serializers.EmailField(required=False, allow_blank=True)
